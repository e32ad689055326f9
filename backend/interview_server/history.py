from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Dict, Iterable, List

from loguru import logger

from .schemas import ConversationTurn

DEFAULT_MAX_TURNS = 12


class SessionStore:
    """
    In-memory rolling conversation history keyed by session id.

    Each session keeps at most ``max_turns`` entries; the oldest are evicted
    first. Every read and write of one session happens under that session's
    lock, so two turns finishing at the same time both land in the history.

    Sessions are never expired and live as long as the process.
    """

    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns
        self._sessions: Dict[str, Deque[ConversationTurn]] = {}
        self._locks: Dict[str, Lock] = {}
        self._guard = Lock()

    def _lock_for(self, session_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = Lock()
            return lock

    def get(self, session_id: str) -> List[ConversationTurn]:
        # Reads never create a lock for an unseen id.
        with self._guard:
            lock = self._locks.get(session_id)
        if lock is None:
            return []
        with lock:
            return list(self._sessions.get(session_id, ()))

    def put(self, session_id: str, history: Iterable[ConversationTurn]) -> None:
        with self._lock_for(session_id):
            trimmed = deque(history, maxlen=self.max_turns)
            with self._guard:
                self._sessions[session_id] = trimmed

    def append(self, session_id: str, *turns: ConversationTurn) -> List[ConversationTurn]:
        """Add turns to the end of a session's history and return the trimmed result."""
        with self._lock_for(session_id):
            history = self._sessions.get(session_id)
            if history is None:
                history = deque(maxlen=self.max_turns)
                with self._guard:
                    self._sessions[session_id] = history
            history.extend(turns)
            logger.debug("Session {} now holds {} turns", session_id, len(history))
            return list(history)

    def session_ids(self) -> List[str]:
        with self._guard:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)
