"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import numpy as np


class CaptureState(Enum):
    """Logical states of a capture device."""

    IDLE = "idle"
    CAPTURING = "capturing"


class DeviceBindResult(Enum):
    """Outcome of binding a preferred input device before capture."""

    DEFAULT = "default"
    BOUND = "bound"
    KEPT_PREVIOUS = "kept_previous"


@dataclass(frozen=True, eq=False)
class RawCapture:
    """Interleaved PCM16 samples produced by one capture session.

    ``samples`` is a 1-D int16 array laid out ``[ch0, ch1, ..., ch0, ch1, ...]``.
    The array is copied and marked read-only on construction so the capture
    is an immutable snapshot.
    """

    samples: np.ndarray
    sample_rate: int
    channels: int

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.int16, copy=True).reshape(-1)
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @property
    def frame_count(self) -> int:
        if self.channels <= 0:
            return 0
        return len(self.samples) // self.channels

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / self.sample_rate

    def frames(self) -> np.ndarray:
        """Return samples shaped ``(frames, channels)``."""
        return self.samples[: self.frame_count * self.channels].reshape(
            -1, self.channels
        )


class CaptureDevice(Protocol):
    """Platform microphone capture facility consumed by ``RecordingSession``."""

    def is_available(self) -> bool: ...

    def select_device(self, name: str) -> bool: ...

    def start(self) -> bool: ...

    def stop(self) -> None: ...

    def get_buffer(self) -> RawCapture: ...
