from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from interview_server.config import Settings
from interview_server.history import SessionStore
from interview_server.main import create_app


class FakeTranscriptions:
    def __init__(self, text: Optional[str] = "Tell me about yourself", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeCompletions:
    def __init__(self, reply: Optional[str] = "Great. Why this role?", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.choices: Optional[list] = None
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.choices is not None:
            return SimpleNamespace(choices=self.choices)
        message = SimpleNamespace(role="assistant", content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    """Stands in for AsyncOpenAI: only the two endpoints the server calls."""

    def __init__(self) -> None:
        self.transcriptions = FakeTranscriptions()
        self.completions = FakeCompletions()
        self.audio = SimpleNamespace(transcriptions=self.transcriptions)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def settings() -> Settings:
    return Settings(OPENAI_API_KEY="test-key")


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def store(settings: Settings) -> SessionStore:
    return SessionStore(max_turns=settings.history_max_turns)


@pytest.fixture
def client(settings: Settings, store: SessionStore, fake_openai: FakeOpenAI) -> TestClient:
    app = create_app(settings, store=store, client=fake_openai)
    return TestClient(app)
