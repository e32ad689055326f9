class ClientInputError(ValueError):
    """Raised when a request is missing something only the caller can fix."""


class ExternalServiceError(RuntimeError):
    """Raised when transcription or chat completion fails."""
