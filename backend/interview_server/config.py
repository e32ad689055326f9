from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
ROOT_DIR = BASE_DIR.parent
ENV_CANDIDATES = [ROOT_DIR / ".env", BASE_DIR / ".env"]

ENV_FILE = ENV_CANDIDATES[0]
for candidate in ENV_CANDIDATES:
    if candidate.exists():
        ENV_FILE = candidate
        break

load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    app_env: Literal["development", "production"] = Field(
        default="development", alias="APP_ENV"
    )
    openai_api_key: str = Field(..., alias="OPENAI_API_KEY")
    transcription_model: str = Field("gpt-4o-mini-transcribe", alias="TRANSCRIPTION_MODEL")
    chat_model: str = Field("gpt-4o-mini", alias="CHAT_MODEL")
    request_timeout_seconds: float = Field(60.0, alias="REQUEST_TIMEOUT_SECONDS")
    history_max_turns: int = Field(12, ge=1, alias="HISTORY_MAX_TURNS")
    default_session_id: str = Field("default", alias="DEFAULT_SESSION_ID")
    default_job_title: str = Field("Software Engineer Intern", alias="DEFAULT_JOB_TITLE")
    default_difficulty: str = Field("easy", alias="DEFAULT_DIFFICULTY")
    default_interview_type: str = Field("behavioral", alias="DEFAULT_INTERVIEW_TYPE")
    no_reply_text: str = Field("(No reply)", alias="NO_REPLY_TEXT")
    allow_origins: list[str] = Field(default=["*"])


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
