class EncodingError(ValueError):
    """Raised when audio cannot be turned into a WAV byte stream."""


class DeviceError(RuntimeError):
    """Raised when no audio capture device is available."""


class TransportError(RuntimeError):
    """Raised when the interview service cannot be reached or answers badly."""
