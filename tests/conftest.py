"""Pytest configuration helpers and hardware-free fakes."""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()
os.environ.setdefault(
    "VOICENOTE_CONFIG", str(Path(__file__).resolve().parent / "config.test.yml")
)

from voicenote.asr.transcriber import Transcriber  # noqa: E402
from voicenote.audio.types import RawCapture  # noqa: E402
from voicenote.session import RecordingSession  # noqa: E402
from voicenote.storage.artifacts import ArtifactWriter  # noqa: E402


class FakeCapture:
    """In-memory capture device."""

    def __init__(
        self,
        samples: Optional[np.ndarray] = None,
        sample_rate: int = 16000,
        channels: int = 1,
        available: bool = True,
        starts: bool = True,
        devices: tuple = ("Built-in Microphone", "USB Mic"),
    ) -> None:
        self.samples = np.zeros(0, dtype=np.int16) if samples is None else samples
        self.sample_rate = sample_rate
        self.channels = channels
        self.available = available
        self.starts = starts
        self.devices = devices
        self.device: Optional[str] = None
        self.capturing = False
        self.start_calls = 0

    def is_available(self) -> bool:
        return self.available

    def select_device(self, name: str) -> bool:
        if name == "default":
            self.device = None
            return True
        if name in self.devices:
            self.device = name
            return True
        return False

    def start(self) -> bool:
        self.start_calls += 1
        if not self.starts:
            return False
        self.capturing = True
        return True

    def stop(self) -> None:
        self.capturing = False

    def get_buffer(self) -> RawCapture:
        return RawCapture(self.samples, self.sample_rate, self.channels)


class FakeContext:
    def __init__(self, engine: "FakeEngine") -> None:
        self.engine = engine
        self.released = False
        self._segments: List[str] = []

    def run(self, samples, params) -> None:
        self.engine.received.append(np.array(samples, copy=True))
        self.engine.params.append(params)
        if self.engine.fail_inference:
            raise RuntimeError("decoder exploded")
        self._segments = list(self.engine.segments)

    def segment_count(self) -> int:
        return len(self._segments)

    def segment_text(self, index: int) -> str:
        return self._segments[index]

    def release(self) -> None:
        self.released = True
        self.engine.releases += 1


class FakeEngine:
    """Recognition engine returning canned segments."""

    def __init__(
        self,
        segments=("Hello", "world"),
        fail_load: bool = False,
        load_returns_none: bool = False,
        fail_inference: bool = False,
    ) -> None:
        self.segments = list(segments)
        self.fail_load = fail_load
        self.load_returns_none = load_returns_none
        self.fail_inference = fail_inference
        self.loads = 0
        self.releases = 0
        self.received: List[np.ndarray] = []
        self.params: list = []
        self.contexts: List[FakeContext] = []

    def load_model(self, model, params):
        self.loads += 1
        if self.fail_load:
            raise FileNotFoundError(f"no such model: {model}")
        if self.load_returns_none:
            return None
        context = FakeContext(self)
        self.contexts.append(context)
        return context


class FixedClock:
    def __init__(self, when: datetime = datetime(2024, 5, 17, 9, 30, 15)) -> None:
        self.when = when

    def __call__(self) -> datetime:
        return self.when


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def notes_dir(tmp_path) -> Path:
    return tmp_path / "voice_notes"


@pytest.fixture
def make_session(notes_dir, clock):
    sessions = []

    def _make(capture: FakeCapture, engine: FakeEngine, keep_model_loaded=False):
        transcriber = Transcriber(
            engine, "test-model", keep_model_loaded=keep_model_loaded
        )
        session = RecordingSession(
            capture, transcriber, ArtifactWriter(notes_dir, clock=clock)
        )
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.close()
