import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent

load_dotenv(ROOT_DIR / ".env", override=False)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


ENDPOINT_URL: str = os.getenv(
    "INTERVIEW_ENDPOINT_URL", "http://localhost:3000/interview-turn"
)
SESSION_ID: str = os.getenv("INTERVIEW_SESSION_ID", "player1")
REQUEST_TIMEOUT: float = float(os.getenv("INTERVIEW_REQUEST_TIMEOUT", "60"))

# 16 kHz is plenty for speech
SAMPLE_RATE: int = int(os.getenv("SAMPLE_RATE", "16000"))
CHANNELS: int = int(os.getenv("CHANNELS", "1"))
# Safety cap, not the expected answer length
MAX_RECORD_SECONDS: float = float(os.getenv("MAX_RECORD_SECONDS", "20"))
PLAYBACK_AFTER_STOP: bool = _env_flag("PLAYBACK_AFTER_STOP", False)

OUTPUT_FILE_NAME: str = os.getenv("OUTPUT_FILE_NAME", "recordings/recording.wav")
UPLOAD_FILE_NAME = "recording.wav"
UPLOAD_MIME_TYPE = "audio/wav"
