import time

import numpy as np
import pytest

try:
    import sounddevice  # noqa: F401
except (ImportError, OSError):
    pytest.skip("PortAudio is not available", allow_module_level=True)

from voicenote.audio import device_manager  # noqa: E402
from voicenote.audio.recorder import SoundDeviceCapture  # noqa: E402
from voicenote.audio.types import CaptureState  # noqa: E402

DEVICES = [
    {"name": "MacBook Pro Microphone", "max_input_channels": 1, "default_samplerate": 48000.0},
    {"name": "MacBook Pro Speakers", "max_input_channels": 0, "default_samplerate": 48000.0},
    {"name": "USB Audio CODEC", "max_input_channels": 2, "default_samplerate": 44100.0},
]


@pytest.fixture
def fake_devices(monkeypatch):
    def query_devices(device=None, kind=None):
        if kind == "input":
            return DEVICES[0]
        if device is None:
            return DEVICES
        return DEVICES[device]

    monkeypatch.setattr(device_manager.sd, "query_devices", query_devices)


def test_list_input_devices_skips_outputs(fake_devices):
    names = [d["name"] for d in device_manager.list_input_devices()]

    assert names == ["MacBook Pro Microphone", "USB Audio CODEC"]
    assert device_manager.is_capture_available()


def test_find_input_device_prefers_exact_match(fake_devices):
    assert device_manager.find_input_device("usb audio codec") == 2
    assert device_manager.find_input_device("USB") == 2
    assert device_manager.find_input_device("Speakers") is None
    assert device_manager.find_input_device("default") is None


def test_select_device_keeps_previous_on_failure(fake_devices):
    capture = SoundDeviceCapture(channels=2)

    assert capture.select_device("USB Audio CODEC")
    assert capture.device == 2
    assert not capture.select_device("Nonexistent")
    assert capture.device == 2
    assert capture.select_device("default")
    assert capture.device is None


def test_stream_format_follows_device(fake_devices):
    capture = SoundDeviceCapture(channels=2)
    capture.device = 2
    assert capture._resolve_stream_format() == (44100, 2)

    capture.device = 0
    assert capture._resolve_stream_format() == (48000, 1)


def test_buffer_snapshot_from_callback_blocks(fake_devices):
    capture = SoundDeviceCapture(sample_rate=16000, channels=2)
    capture.sample_rate, capture.channels = 16000, 2
    capture._recording_start_time = time.time()

    block = np.array([[1, -1], [2, -2], [3, -3]], dtype=np.int16)
    capture._audio_callback(block, 3, None, None)
    capture._audio_callback(block * 10, 3, None, None)
    raw = capture.get_buffer()
    capture._audio_callback(block, 3, None, None)

    assert raw.channels == 2
    assert raw.frame_count == 6
    assert raw.samples[:6].tolist() == [1, -1, 2, -2, 3, -3]
    assert capture.get_buffer().frame_count == 9


def _capture_for_callbacks() -> SoundDeviceCapture:
    capture = SoundDeviceCapture(sample_rate=16000, channels=2)
    capture.sample_rate, capture.channels = 16000, 2
    capture._recording_start_time = time.time()
    return capture


def test_buffer_size_limit_drops_later_blocks(fake_devices):
    capture = _capture_for_callbacks()
    capture.buffer_size_limit = 16 / (1024 * 1024)
    block = np.array([[1, -1], [2, -2], [3, -3]], dtype=np.int16)

    for _ in range(4):
        capture._audio_callback(block, 3, None, None)

    assert capture._limit_reached
    assert capture.get_buffer().frame_count == 6


def test_duration_limit_drops_blocks_after_deadline(fake_devices):
    capture = _capture_for_callbacks()
    capture.max_recording_duration = 1
    block = np.array([[5, 5]], dtype=np.int16)

    capture._audio_callback(block, 1, None, None)
    capture._recording_start_time -= 5
    capture._audio_callback(block, 1, None, None)
    capture._recording_start_time = time.time()
    capture._audio_callback(block, 1, None, None)

    assert capture._limit_reached
    assert capture.get_buffer().frame_count == 1


def test_zero_limits_disable_both_checks(fake_devices):
    capture = _capture_for_callbacks()
    capture.max_recording_duration = 0
    capture.buffer_size_limit = 0
    capture._recording_start_time -= 7200
    block = np.ones((1024, 2), dtype=np.int16)

    for _ in range(3):
        capture._audio_callback(block, 1024, None, None)

    assert not capture._limit_reached
    assert capture.get_buffer().frame_count == 3072


def test_start_failure_returns_false(fake_devices, monkeypatch):
    def broken_stream(**kwargs):
        raise RuntimeError("PortAudio error -9996")

    monkeypatch.setattr("voicenote.audio.recorder.sd.InputStream", broken_stream)
    capture = SoundDeviceCapture()

    assert not capture.start()
    assert capture.state is CaptureState.IDLE


def test_no_input_devices(monkeypatch):
    monkeypatch.setattr(device_manager.sd, "query_devices", lambda *a, **k: [DEVICES[1]])

    assert not device_manager.is_capture_available()
