import struct
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
import soundfile as sf
from loguru import logger

from interview_client.config import (
    CHANNELS,
    MAX_RECORD_SECONDS,
    OUTPUT_FILE_NAME,
    PLAYBACK_AFTER_STOP,
    SAMPLE_RATE,
)
from interview_client.exceptions import DeviceError, EncodingError

WAV_HEADER_SIZE = 44
FMT_CHUNK_SIZE = 16
PCM_FORMAT = 1
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
PCM_MAX = 32767
PCM_MIN = -32768

# RIFF header, "fmt " chunk and "data" chunk header, all little-endian
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True, eq=False)
class AudioBuffer:
    """
    Normalized audio samples ready to be encoded.

    Attributes:
        samples (np.ndarray): Float samples in [-1.0, 1.0], interleaved per channel.
            A ``(frames, channels)`` array is flattened row by row.
        channels (int): Number of interleaved channels.
        sample_rate (int): Samples per second per channel.
    """

    samples: np.ndarray
    channels: int = CHANNELS
    sample_rate: int = SAMPLE_RATE

    def __post_init__(self) -> None:
        if self.channels < 1:
            raise EncodingError(f"Channel count must be positive, got {self.channels}.")
        if self.sample_rate < 1:
            raise EncodingError(f"Sample rate must be positive, got {self.sample_rate}.")

        data = np.asarray(self.samples, dtype=np.float32)
        if data.ndim == 2:
            if data.shape[1] != self.channels:
                raise EncodingError(
                    f"Sample array has {data.shape[1]} channels, expected {self.channels}."
                )
            data = data.reshape(-1)
        elif data.ndim != 1:
            raise EncodingError(f"Unsupported sample array shape {data.shape}.")

        if data.size % self.channels:
            raise EncodingError(
                f"{data.size} samples cannot be split across {self.channels} channels."
            )
        object.__setattr__(self, "samples", data)

    @property
    def frame_count(self) -> int:
        return self.samples.size // self.channels

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate


def encode_wav(buffer: Optional[AudioBuffer]) -> bytes:
    """
    Encode an audio buffer as a 16-bit PCM WAV file.

    Args:
        buffer (Optional[AudioBuffer]): The samples to encode.

    Returns:
        bytes: 44-byte header followed by ``2 * frames * channels`` bytes of payload.

    Raises:
        EncodingError: If no buffer is given.
    """
    if buffer is None:
        raise EncodingError("An audio buffer is required for WAV encoding.")

    scaled = np.nan_to_num(buffer.samples.astype(np.float64) * PCM_MAX, nan=0.0)
    pcm: bytes = np.clip(scaled, PCM_MIN, PCM_MAX).astype("<i2").tobytes()

    block_align = buffer.channels * BYTES_PER_SAMPLE
    header = _HEADER_STRUCT.pack(
        b"RIFF",
        WAV_HEADER_SIZE - 8 + len(pcm),
        b"WAVE",
        b"fmt ",
        FMT_CHUNK_SIZE,
        PCM_FORMAT,
        buffer.channels,
        buffer.sample_rate,
        buffer.sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        len(pcm),
    )
    return header + pcm


def save_wav(wav_bytes: bytes, output_file_name: str = OUTPUT_FILE_NAME) -> str:
    """
    Save encoded WAV bytes to a file.

    Args:
        wav_bytes (bytes): The encoded audio.
        output_file_name (str, optional): The output file name. Defaults to OUTPUT_FILE_NAME.

    Returns:
        str: The resolved path of the written file.
    """
    output_path = Path(output_file_name)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(wav_bytes)
    resolved = str(output_path.resolve())
    logger.debug(f"Audio saved to: {resolved}...")
    return resolved


def load_wav(path: Union[str, Path]) -> AudioBuffer:
    """
    Read an audio file from disk into an AudioBuffer.

    Any format soundfile can decode is accepted; the result is re-encoded as
    16-bit PCM before upload.
    """
    data, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
    return AudioBuffer(data, channels=data.shape[1], sample_rate=sample_rate)


def _import_sounddevice() -> Any:
    try:
        import sounddevice as sd
    except OSError as exc:  # PortAudio shared library missing
        raise DeviceError(f"PortAudio is not available: {exc}") from exc
    return sd


def find_input_device(name_hint: Optional[str] = None) -> int:
    """
    Find a capture device, optionally matching part of its name.

    Args:
        name_hint (Optional[str]): Case-insensitive substring of the device name.

    Returns:
        int: The device ID.

    Raises:
        DeviceError: If no matching input device exists.
    """
    sd = _import_sounddevice()
    devices: List[Dict[str, Any]] = list(sd.query_devices())
    for device_id, device in enumerate(devices):
        if device.get("max_input_channels", 0) <= 0:
            continue
        if name_hint is None or name_hint.lower() in device["name"].lower():
            return device_id

    if name_hint is None:
        raise DeviceError("No microphone devices found.")
    raise DeviceError(f"No microphone device matching '{name_hint}'.")


class MicRecorder:
    """
    Record microphone audio into a fixed-size buffer and keep the spoken part.

    The buffer is sized for ``max_seconds`` up front; ``stop`` trims it to the
    frames that actually arrived and encodes them as WAV.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        max_seconds: float = MAX_RECORD_SECONDS,
        device: Optional[str] = None,
        playback_after_stop: bool = PLAYBACK_AFTER_STOP,
        stream_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.max_seconds = max_seconds
        self.device = device
        self.playback_after_stop = playback_after_stop
        self._stream_factory = stream_factory
        self._lock = Lock()
        self._stream: Optional[Any] = None
        self._buffer: Optional[np.ndarray] = None
        self._position: int = 0
        self.is_recording: bool = False
        self.last_wav_bytes: Optional[bytes] = None
        self.last_duration_seconds: float = 0.0

    @property
    def max_frames(self) -> int:
        return int(self.max_seconds * self.sample_rate)

    def start(self) -> None:
        if self.is_recording:
            logger.debug("Recorder already running.")
            return

        try:
            device_id = find_input_device(self.device)
        except DeviceError as error:
            logger.error(f"Cannot start recording: {error}")
            return

        with self._lock:
            self._buffer = np.zeros((self.max_frames, self.channels), dtype=np.float32)
            self._position = 0

        factory = self._stream_factory or _import_sounddevice().InputStream
        try:
            stream = factory(
                samplerate=self.sample_rate,
                device=device_id,
                channels=self.channels,
                dtype="float32",
                callback=self._audio_callback,
            )
            stream.start()
        except Exception as error:
            logger.error(f"Unable to open input stream: {error}")
            with self._lock:
                self._buffer = None
            return

        self._stream = stream
        self.is_recording = True
        logger.info("Recording started...")

    def stop(self) -> Optional[bytes]:
        """
        Stop capturing and encode the captured region.

        Returns:
            Optional[bytes]: The WAV bytes, or None when nothing was captured.
        """
        if not self.is_recording:
            return None

        with self._lock:
            captured = self._position
            buffer = self._buffer
            self._buffer = None
        self._close_stream()
        self.is_recording = False

        if buffer is None:
            logger.error("No recording buffer.")
            return None

        if captured <= 0:
            logger.warning("No audio captured (0 frames).")
            return None

        trimmed = AudioBuffer(
            buffer[:captured].copy(),
            channels=self.channels,
            sample_rate=self.sample_rate,
        )
        self.last_duration_seconds = captured / self.sample_rate
        self.last_wav_bytes = encode_wav(trimmed)
        logger.info(
            f"Recording stopped. Duration: {self.last_duration_seconds:.2f}s, "
            f"WAV bytes: {len(self.last_wav_bytes)}"
        )

        if self.playback_after_stop:
            self._play(trimmed)
        return self.last_wav_bytes

    def _audio_callback(self, indata: np.ndarray, frames: int, *_: Any) -> None:
        with self._lock:
            if self._buffer is None:
                return
            remaining = self._buffer.shape[0] - self._position
            if remaining <= 0:
                return
            count = min(frames, remaining)
            self._buffer[self._position : self._position + count] = indata[:count]
            self._position += count

    def _close_stream(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as error:
            logger.error(f"Error stopping audio stream: {error}")
        finally:
            self._stream = None

    def _play(self, buffer: AudioBuffer) -> None:
        try:
            sd = _import_sounddevice()
            sd.play(buffer.samples.reshape(-1, buffer.channels), buffer.sample_rate)
        except Exception as error:
            logger.warning(f"Playback failed: {error}")
