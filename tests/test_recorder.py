import numpy as np
import pytest

from interview_client import audio
from interview_client.audio import MicRecorder
from interview_client.exceptions import DeviceError

SR = 16000


class FakeStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.callback = kwargs["callback"]
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True

    def feed(self, frames: int, value: float = 0.25):
        channels = self.kwargs["channels"]
        chunk = np.full((frames, channels), value, dtype=np.float32)
        self.callback(chunk, frames, None, None)


class StreamFactory:
    def __init__(self):
        self.streams = []

    def __call__(self, **kwargs):
        stream = FakeStream(**kwargs)
        self.streams.append(stream)
        return stream

    @property
    def last(self) -> FakeStream:
        return self.streams[-1]


@pytest.fixture
def factory(monkeypatch):
    monkeypatch.setattr(audio, "find_input_device", lambda name_hint=None: 0)
    return StreamFactory()


def make_recorder(factory, **kwargs) -> MicRecorder:
    kwargs.setdefault("sample_rate", SR)
    kwargs.setdefault("max_seconds", 1.0)
    kwargs.setdefault("playback_after_stop", False)
    return MicRecorder(stream_factory=factory, **kwargs)


def test_start_opens_stream_with_capture_settings(factory):
    recorder = make_recorder(factory, channels=1)
    recorder.start()

    assert recorder.is_recording
    assert factory.last.started
    assert factory.last.kwargs["samplerate"] == SR
    assert factory.last.kwargs["channels"] == 1
    assert factory.last.kwargs["dtype"] == "float32"


def test_stop_without_captured_audio_keeps_last_output(factory):
    recorder = make_recorder(factory)
    recorder.last_wav_bytes = b"previous"
    recorder.last_duration_seconds = 1.5

    recorder.start()
    assert recorder.stop() is None

    assert not recorder.is_recording
    assert factory.last.closed
    assert recorder.last_wav_bytes == b"previous"
    assert recorder.last_duration_seconds == 1.5


def test_stop_trims_to_captured_frames(factory):
    recorder = make_recorder(factory, max_seconds=20.0)
    recorder.start()
    factory.last.feed(1600)
    factory.last.feed(800)

    wav = recorder.stop()

    assert wav == recorder.last_wav_bytes
    assert len(wav) == 44 + 2 * 2400
    assert recorder.last_duration_seconds == pytest.approx(0.15)
    assert factory.last.closed


def test_capture_stops_at_safety_cap(factory):
    recorder = make_recorder(factory, max_seconds=0.01)
    recorder.start()
    factory.last.feed(100)
    factory.last.feed(100)

    wav = recorder.stop()

    assert len(wav) == 44 + 2 * 160
    assert recorder.last_duration_seconds == pytest.approx(0.01)


def test_stereo_capture_keeps_both_channels(factory):
    recorder = make_recorder(factory, channels=2)
    recorder.start()
    factory.last.feed(10, value=0.5)

    wav = recorder.stop()
    assert len(wav) == 44 + 2 * 10 * 2


def test_start_twice_is_a_noop(factory):
    recorder = make_recorder(factory)
    recorder.start()
    recorder.start()
    assert len(factory.streams) == 1


def test_stop_while_idle_is_a_noop(factory):
    recorder = make_recorder(factory)
    assert recorder.stop() is None
    assert recorder.last_wav_bytes is None


def test_missing_device_leaves_recorder_idle(monkeypatch):
    def no_device(name_hint=None):
        raise DeviceError("No microphone devices found.")

    monkeypatch.setattr(audio, "find_input_device", no_device)
    factory = StreamFactory()
    recorder = make_recorder(factory)

    recorder.start()

    assert not recorder.is_recording
    assert factory.streams == []


def test_stream_open_failure_leaves_recorder_idle(monkeypatch):
    monkeypatch.setattr(audio, "find_input_device", lambda name_hint=None: 0)

    def broken_factory(**kwargs):
        raise RuntimeError("device busy")

    recorder = MicRecorder(stream_factory=broken_factory, playback_after_stop=False)
    recorder.start()
    assert not recorder.is_recording


def test_find_input_device_skips_output_only_devices(monkeypatch):
    class FakeSoundDevice:
        @staticmethod
        def query_devices():
            return [
                {"name": "Speakers", "max_input_channels": 0},
                {"name": "USB Microphone", "max_input_channels": 1},
            ]

    monkeypatch.setattr(audio, "_import_sounddevice", lambda: FakeSoundDevice)

    assert audio.find_input_device() == 1
    assert audio.find_input_device("usb") == 1
    with pytest.raises(DeviceError):
        audio.find_input_device("blackhole")


def test_playback_replays_trimmed_take(factory, monkeypatch):
    played = []

    class FakeSoundDevice:
        @staticmethod
        def play(data, samplerate):
            played.append((data.copy(), samplerate))

    monkeypatch.setattr(audio, "_import_sounddevice", lambda: FakeSoundDevice)
    recorder = make_recorder(factory, channels=2, playback_after_stop=True)
    recorder.start()
    factory.last.feed(40, value=0.5)

    recorder.stop()

    assert len(played) == 1
    data, samplerate = played[0]
    assert samplerate == SR
    assert data.shape == (40, 2)
    assert np.all(data == 0.5)


def test_playback_failure_keeps_the_take(factory, monkeypatch):
    def no_portaudio():
        raise DeviceError("PortAudio is not available")

    monkeypatch.setattr(audio, "_import_sounddevice", no_portaudio)
    recorder = make_recorder(factory, playback_after_stop=True)
    recorder.start()
    factory.last.feed(16)

    assert len(recorder.stop()) == 44 + 2 * 16
