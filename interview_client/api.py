from dataclasses import dataclass
from typing import Dict, Optional

import requests
from loguru import logger

from interview_client.config import (
    ENDPOINT_URL,
    REQUEST_TIMEOUT,
    UPLOAD_FILE_NAME,
    UPLOAD_MIME_TYPE,
)
from interview_client.exceptions import TransportError


@dataclass(frozen=True)
class TurnReply:
    transcript: str
    reply_text: str


class InterviewApiClient:
    """
    Post recorded answers to the interview service.

    Args:
        endpoint_url (str): Full URL of the ``/interview-turn`` endpoint.
        timeout (float): Seconds to wait for the service before giving up.
        session (Optional[requests.Session]): Session to reuse connections with.
    """

    def __init__(
        self,
        endpoint_url: str = ENDPOINT_URL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self.endpoint_url.rsplit("/", 1)[0]

    def send_turn(
        self,
        wav_bytes: Optional[bytes],
        *,
        session_id: str,
        job_title: Optional[str] = None,
        difficulty: Optional[str] = None,
        interview_type: Optional[str] = None,
    ) -> TurnReply:
        """
        Send one recorded answer and return the interviewer's reply.

        Raises:
            TransportError: If there is nothing to send, the request fails or the
                response cannot be parsed.
        """
        if not wav_bytes:
            logger.warning("No recording available.")
            raise TransportError("No recording available.")

        form: Dict[str, str] = {"sessionId": session_id}
        optional_fields = {
            "jobTitle": job_title,
            "difficulty": difficulty,
            "interviewType": interview_type,
        }
        form.update({key: value for key, value in optional_fields.items() if value})
        files = {"audio": (UPLOAD_FILE_NAME, wav_bytes, UPLOAD_MIME_TYPE)}

        try:
            response = self._session.post(
                self.endpoint_url, data=form, files=files, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as error:
            detail = _error_detail(getattr(error, "response", None))
            logger.error(f"Interview request failed: {error} {detail}".rstrip())
            raise TransportError(f"Interview request failed: {error}") from error

        logger.debug(f"Server response: {response.text}")
        try:
            payload = response.json()
            return TurnReply(
                transcript=str(payload["transcript"]),
                reply_text=str(payload["reply_text"]),
            )
        except (ValueError, KeyError, TypeError) as error:
            logger.error(f"Malformed interview response: {response.text!r}")
            raise TransportError("Malformed interview response.") from error

    def health(self) -> bool:
        try:
            response = self._session.get(f"{self.base_url}/health", timeout=self.timeout)
            response.raise_for_status()
            return bool(response.json().get("ok"))
        except (requests.RequestException, ValueError, AttributeError) as error:
            logger.warning(f"Health check failed: {error}")
            return False


def _error_detail(response: Optional[requests.Response]) -> str:
    if response is None:
        return ""
    try:
        return str(response.json().get("error", ""))
    except (ValueError, AttributeError):
        return response.text
