from typing import Callable, Optional

import soundfile as sf
from loguru import logger

from interview_client.api import InterviewApiClient, TurnReply
from interview_client.audio import MicRecorder, encode_wav, load_wav, save_wav
from interview_client.exceptions import TransportError

QUIT_COMMANDS = {"q", "quit", "exit"}


class InterviewSession:
    """
    Glue between the recorder, the API client and the terminal.

    Args:
        recorder (MicRecorder): Captures the candidate's answers.
        client (InterviewApiClient): Sends answers to the interview service.
        session_id (str): Conversation identifier shared by all turns.
        output (Callable[[str], None]): Where transcript and reply are written.
    """

    def __init__(
        self,
        recorder: MicRecorder,
        client: InterviewApiClient,
        session_id: str,
        *,
        job_title: Optional[str] = None,
        difficulty: Optional[str] = None,
        interview_type: Optional[str] = None,
        save_path: Optional[str] = None,
        output: Callable[[str], None] = print,
    ) -> None:
        self.recorder = recorder
        self.client = client
        self.session_id = session_id
        self.job_title = job_title
        self.difficulty = difficulty
        self.interview_type = interview_type
        self.save_path = save_path
        self.output = output

    def recording_event(self) -> Optional[TurnReply]:
        """
        Toggle recording. Stopping sends the take and returns the reply.
        """
        if not self.recorder.is_recording:
            self.recorder.start()
            if self.recorder.is_recording:
                self.output("Recording... press Enter to stop.")
            return None

        wav_bytes = self.recorder.stop()
        if not wav_bytes:
            self.output("Nothing was recorded.")
            return None

        if self.save_path:
            save_wav(wav_bytes, self.save_path)
        return self.send_recording(wav_bytes)

    def send_file(self, path: str) -> Optional[TurnReply]:
        logger.debug(f"Loading recording from {path}")
        try:
            buffer = load_wav(path)
        except (OSError, sf.SoundFileError) as error:
            logger.error(f"Unable to read {path}: {error}")
            return None
        return self.send_recording(encode_wav(buffer))

    def send_recording(self, wav_bytes: bytes) -> Optional[TurnReply]:
        self.output("Sending answer...")
        try:
            reply = self.client.send_turn(
                wav_bytes,
                session_id=self.session_id,
                job_title=self.job_title,
                difficulty=self.difficulty,
                interview_type=self.interview_type,
            )
        except TransportError as error:
            self.output(f"Request failed: {error}")
            return None

        self.render(reply)
        return reply

    def render(self, reply: TurnReply) -> None:
        self.output(f"You: {reply.transcript}")
        self.output(f"Interviewer: {reply.reply_text}")

    def run(self, read_line: Callable[[str], str] = input) -> None:
        """
        Interactive loop: Enter starts and stops a take, 'q' quits.
        """
        self.output("Press Enter to start answering, 'q' to quit.")
        while True:
            try:
                command = read_line("").strip().lower()
            except (EOFError, KeyboardInterrupt):
                break
            if command in QUIT_COMMANDS:
                break
            self.recording_event()

        if self.recorder.is_recording:
            self.recorder.stop()
        logger.debug("Interview session closed.")
