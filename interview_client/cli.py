import argparse
import sys
from typing import List, Optional

from loguru import logger

from interview_client.api import InterviewApiClient
from interview_client.audio import MicRecorder
from interview_client.config import (
    ENDPOINT_URL,
    MAX_RECORD_SECONDS,
    PLAYBACK_AFTER_STOP,
    REQUEST_TIMEOUT,
    SESSION_ID,
)
from interview_client.handlers import InterviewSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Answer mock interview questions by voice.")
    parser.add_argument("--url", default=ENDPOINT_URL, help="Interview turn endpoint.")
    parser.add_argument("--session-id", default=SESSION_ID, help="Conversation identifier.")
    parser.add_argument("--job-title", default=None, help="Role being interviewed for.")
    parser.add_argument("--difficulty", default=None, help="Interview difficulty.")
    parser.add_argument("--interview-type", default=None, help="E.g. behavioral, technical.")
    parser.add_argument("--file", default=None, help="Send an existing audio file and exit.")
    parser.add_argument("--save", default=None, help="Keep each recording at this path.")
    parser.add_argument("--device", default=None, help="Part of the microphone name.")
    parser.add_argument(
        "--max-seconds", type=float, default=MAX_RECORD_SECONDS, help="Recording safety cap."
    )
    parser.add_argument(
        "--playback", action="store_true", default=PLAYBACK_AFTER_STOP, help="Replay each take."
    )
    parser.add_argument("--timeout", type=float, default=REQUEST_TIMEOUT, help="HTTP timeout.")
    parser.add_argument("--log-level", default="INFO", help="Loguru log level.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    session = InterviewSession(
        recorder=MicRecorder(
            max_seconds=args.max_seconds,
            device=args.device,
            playback_after_stop=args.playback,
        ),
        client=InterviewApiClient(endpoint_url=args.url, timeout=args.timeout),
        session_id=args.session_id,
        job_title=args.job_title,
        difficulty=args.difficulty,
        interview_type=args.interview_type,
        save_path=args.save,
    )

    if args.file:
        return 0 if session.send_file(args.file) else 1

    session.run()
    return 0
