"""Microphone capture adapter built on sounddevice."""

import threading
import time
from typing import Optional

import numpy as np
import sounddevice as sd

from voicenote.audio import device_manager
from voicenote.audio.types import CaptureState, RawCapture
from voicenote.config.config_loader import config
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)


class SoundDeviceCapture:
    """Records interleaved PCM16 audio from an input device.

    One instance is meant to be owned by a single ``RecordingSession`` and
    reused across recordings.
    """

    def __init__(
        self,
        sample_rate: Optional[int] = None,
        channels: Optional[int] = None,
        blocksize: Optional[int] = None,
    ) -> None:
        """Initialize the capture adapter.

        Args:
            sample_rate: Capture rate; None uses ``audio.sample_rate`` or the
                device default rate.
            channels: Maximum channels to capture; the device may offer fewer.
            blocksize: Frames per stream callback.
        """
        self.configured_sample_rate = sample_rate or config.get("audio.sample_rate")
        self.max_channels = channels or config.get("audio.channels", 2)
        self.blocksize = blocksize or config.get("audio.blocksize", 1024)
        self.device: Optional[int] = None

        # Memory management settings for audio buffers
        self.max_recording_duration = config.get("audio.max_recording_duration", 600)
        self.buffer_size_limit = config.get("audio.buffer_size_limit", 200)

        self.state = CaptureState.IDLE
        self.stream: Optional[sd.InputStream] = None
        self.sample_rate = 0
        self.channels = 0
        self._chunks: list[np.ndarray] = []
        self._lock = threading.Lock()
        self._total_audio_size = 0
        self._recording_start_time = 0.0
        self._limit_reached = False

    def is_available(self) -> bool:
        """Check whether any capture device exists on the host."""
        return device_manager.is_capture_available()

    def select_device(self, name: str) -> bool:
        """Bind to the named input device.

        Args:
            name: Device name; "default" or blank selects the system default.

        Returns:
            True if bound, False if no device matched (previous device kept).
        """
        if name.strip().lower() in device_manager.DEFAULT_DEVICE_NAMES:
            self.device = None
            return True

        index = device_manager.find_input_device(name)
        if index is None:
            logger.warning(f"Input device '{name}' not found, keeping device {self.device}")
            return False

        self.device = index
        logger.info(f"Bound input device '{name}' (index {index})")
        return True

    def _resolve_stream_format(self) -> tuple[int, int]:
        device_info = device_manager.get_device_info(self.device)
        device_channels = int(device_info["max_input_channels"])
        channels = max(1, min(self.max_channels, device_channels))
        sample_rate = self.configured_sample_rate or int(
            device_info["default_samplerate"]
        )
        return int(sample_rate), channels

    def start(self) -> bool:
        """Start capturing audio.

        Returns:
            True if the stream started, False otherwise.
        """
        if self.state is CaptureState.CAPTURING:
            logger.warning("Already capturing")
            return False

        try:
            self.sample_rate, self.channels = self._resolve_stream_format()

            with self._lock:
                self._chunks = []
                self._total_audio_size = 0
                self._limit_reached = False
            self._recording_start_time = time.time()

            self.stream = sd.InputStream(
                device=self.device,
                channels=self.channels,
                samplerate=self.sample_rate,
                blocksize=self.blocksize,
                dtype="int16",
                callback=self._audio_callback,
            )
            self.stream.start()
            self.state = CaptureState.CAPTURING
            logger.info(
                f"Started capture: device {self.device}, "
                f"{self.sample_rate}Hz, {self.channels}ch"
            )
            return True

        except Exception as e:
            logger.error(f"Failed to start capture with device {self.device}: {e}")
            self._close_stream()
            return False

    def _audio_callback(
        self, indata: np.ndarray, frames: int, time_info, status: sd.CallbackFlags
    ) -> None:
        """Accumulate one block of captured audio."""
        if status:
            logger.warning(f"Audio callback status: {status}")

        with self._lock:
            if self._limit_reached:
                return
            if self._should_stop_due_to_limits():
                logger.warning("🟡 Capture limit reached, further audio is dropped")
                self._limit_reached = True
                return

            audio_copy = indata.copy()
            self._chunks.append(audio_copy)
            self._total_audio_size += audio_copy.nbytes

    def _should_stop_due_to_limits(self) -> bool:
        """Check if capture should stop accumulating due to limits."""
        if self.max_recording_duration > 0:
            current_duration = time.time() - self._recording_start_time
            if current_duration > self.max_recording_duration:
                logger.warning(f"Recording duration limit reached: {current_duration:.1f}s")
                return True

        if self.buffer_size_limit > 0:
            current_size_mb = self._total_audio_size / (1024 * 1024)
            if current_size_mb > self.buffer_size_limit:
                logger.warning(f"Audio buffer size limit reached: {current_size_mb:.1f}MB")
                return True

        return False

    def stop(self) -> None:
        """Stop capturing. Accumulated audio stays available via get_buffer()."""
        if self.state is not CaptureState.CAPTURING:
            logger.warning("Not capturing")
            return

        self._close_stream()
        self.state = CaptureState.IDLE
        logger.info(f"Stopped capture after {time.time() - self._recording_start_time:.2f}s")

    def _close_stream(self) -> None:
        if self.stream is None:
            return
        try:
            if self.stream.active:
                self.stream.stop()
            self.stream.close()
        except Exception as e:
            logger.debug(f"Error closing stream: {e}")
        finally:
            self.stream = None

    def get_buffer(self) -> RawCapture:
        """Return a snapshot of everything captured in the last session."""
        with self._lock:
            chunks = list(self._chunks)

        if chunks:
            samples = np.concatenate(chunks, axis=0).reshape(-1)
        else:
            samples = np.zeros(0, dtype=np.int16)

        channels = self.channels or 1
        return RawCapture(
            samples=samples, sample_rate=self.sample_rate, channels=channels
        )
