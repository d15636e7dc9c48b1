"""Recording session controller.

A ``RecordingSession`` owns one capture device and drives a recording
through ``Idle -> Capturing -> Idle``. Stopping runs the note pipeline:

    normalize -> write audio -> resample -> transcribe -> write transcript

Audio is always persisted before transcription; the transcript is written
only when transcription succeeds, so a missing ``.txt`` marks a note whose
transcription is pending. A run that recognizes no speech still writes an
empty ``.txt``, which marks the note as done.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, Union

import numpy as np

from voicenote.asr.transcriber import Transcriber
from voicenote.asr.types import TranscriptionResult
from voicenote.audio.processing import normalize, resample, signal_stats
from voicenote.audio.types import CaptureDevice, CaptureState, DeviceBindResult, RawCapture
from voicenote.config.config_loader import config
from voicenote.storage.artifacts import ArtifactPair, ArtifactWriter, NoteStore, read_audio
from voicenote.utils.exceptions import (
    CaptureStartFailed,
    DeviceUnavailable,
    InvalidChannelCount,
    RecordingError,
    ResampleError,
    SessionStateError,
    TranscriptionError,
    VoiceNoteError,
    WriteError,
)
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)


class NoteStatus(Enum):
    """Outcome of processing one recording."""

    TRANSCRIBED = "transcribed"
    TRANSCRIPTION_PENDING = "transcription_pending"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class NoteResult:
    """What a stopped recording produced."""

    status: NoteStatus
    capture: Optional[RawCapture] = None
    artifacts: Optional[ArtifactPair] = None
    transcript: Optional[TranscriptionResult] = None
    error: Optional[VoiceNoteError] = None

    @property
    def ok(self) -> bool:
        return self.status is NoteStatus.TRANSCRIBED


class _Cancelled(Exception):
    pass


class RecordingSession:
    """Owns the capture device and sequences the note pipeline."""

    def __init__(
        self,
        capture: CaptureDevice,
        transcriber: Transcriber,
        writer: Optional[ArtifactWriter] = None,
    ) -> None:
        self.capture = capture
        self.transcriber = transcriber
        self.writer = writer or ArtifactWriter()
        self._state = CaptureState.IDLE
        self._state_lock = threading.Lock()
        self._cancel = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: Set[Future] = set()
        self._closed = False

    @classmethod
    def from_config(
        cls, notes_dir: Optional[Union[str, Path]] = None
    ) -> "RecordingSession":
        """Build a session around the sounddevice adapter and configured engine."""
        from voicenote.audio.recorder import SoundDeviceCapture

        return cls(
            SoundDeviceCapture(),
            Transcriber.from_config(),
            ArtifactWriter(notes_dir),
        )

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def target_sample_rate(self) -> int:
        return self.transcriber.sample_rate

    def start(self, preferred_device_name: Optional[str] = None) -> DeviceBindResult:
        """Begin capturing.

        Args:
            preferred_device_name: Input device to bind first. A device that
                cannot be bound is not an error: the previous device is kept
                and ``KEPT_PREVIOUS`` is returned.

        Returns:
            How the input device was chosen.

        Raises:
            SessionStateError: If already capturing or the session is closed.
            DeviceUnavailable: If the host has no capture device.
            CaptureStartFailed: If the device refuses to start.
        """
        with self._state_lock:
            if self._closed:
                raise SessionStateError("Session is closed")
            if self._state is CaptureState.CAPTURING:
                raise SessionStateError("Already capturing")

            if not self.capture.is_available():
                logger.error("🛑 Audio capture device is not found")
                raise DeviceUnavailable("No audio capture device available")

            bind_result = DeviceBindResult.DEFAULT
            if preferred_device_name:
                if self.capture.select_device(preferred_device_name):
                    if preferred_device_name.strip().lower() != "default":
                        bind_result = DeviceBindResult.BOUND
                else:
                    bind_result = DeviceBindResult.KEPT_PREVIOUS
                    logger.warning(
                        f"🟡 Could not bind '{preferred_device_name}', "
                        "keeping previous device"
                    )

            if not self.capture.start():
                logger.error("🛑 Failed to start audio capture")
                raise CaptureStartFailed("Capture device refused to start")

            self._state = CaptureState.CAPTURING
            logger.info("Recording...")
            return bind_result

    def stop_capture(self) -> RawCapture:
        """Stop capturing and snapshot the recorded audio.

        The session is back to Idle afterwards, even if the snapshot fails.

        Raises:
            SessionStateError: If not capturing.
            RecordingError: If the capture buffer cannot be retrieved.
        """
        with self._state_lock:
            if self._state is not CaptureState.CAPTURING:
                raise SessionStateError("Not capturing")
            try:
                self.capture.stop()
                raw = self.capture.get_buffer()
            except Exception as e:
                logger.error(f"🛑 Failed to stop recording: {e}")
                raise RecordingError(f"Failed to stop recording: {e}") from e
            finally:
                self._state = CaptureState.IDLE

        logger.info(
            f"Captured {raw.frame_count} frames "
            f"({raw.channels}ch @ {raw.sample_rate}Hz, {raw.duration:.2f}s)"
        )
        return raw

    def stop(self) -> NoteResult:
        """Stop capturing and process the note on the calling thread."""
        raw = self.stop_capture()
        return self.process(raw)

    def stop_async(self) -> "Future[NoteResult]":
        """Stop capturing now and process the note on the worker thread.

        The session can start a new recording as soon as this returns.
        """
        raw = self.stop_capture()
        return self._submit(self.process, raw)

    def _submit(self, fn, *args) -> "Future":
        if self._closed:
            raise SessionStateError("Session is closed")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="voicenote-transcribe"
            )
        future = self._executor.submit(fn, *args)
        self._futures.add(future)
        future.add_done_callback(self._futures.discard)
        return future

    def process(self, raw: RawCapture) -> NoteResult:
        """Run the note pipeline over a finished capture."""
        try:
            signal = normalize(raw)
        except InvalidChannelCount as e:
            logger.error(f"🛑 {e}")
            return NoteResult(NoteStatus.FAILED, capture=raw, error=e)

        try:
            pair = self.writer.write_audio(raw)
        except WriteError as e:
            return NoteResult(NoteStatus.FAILED, capture=raw, error=e)

        return self._transcribe_into(pair, raw, signal)

    def _transcribe_into(
        self, pair: ArtifactPair, raw: RawCapture, signal: np.ndarray
    ) -> NoteResult:
        """Resample, transcribe and write the transcript for one note."""
        try:
            self._check_cancelled()
            resampled = resample(signal, raw.sample_rate, self.target_sample_rate)
            stats = signal_stats(resampled, self.target_sample_rate)
            if stats["rms"] < 0.001:
                logger.warning(
                    f"🟡 Very low RMS {stats['rms']:.6f} - possible silence or wrong microphone"
                )
            self._check_cancelled()
            transcript = self.transcriber.transcribe(resampled)
            self._check_cancelled()
        except _Cancelled:
            logger.info(f"Processing of {pair.base_name} cancelled")
            return NoteResult(NoteStatus.CANCELLED, capture=raw, artifacts=pair)
        except (ResampleError, TranscriptionError) as e:
            logger.warning(f"🟡 Transcription pending for {pair.base_name}: {e}")
            return NoteResult(
                NoteStatus.TRANSCRIPTION_PENDING, capture=raw, artifacts=pair, error=e
            )

        try:
            self.writer.write_transcript(pair, transcript)
        except WriteError as e:
            return NoteResult(
                NoteStatus.FAILED,
                capture=raw,
                artifacts=pair,
                transcript=transcript,
                error=e,
            )

        return NoteResult(
            NoteStatus.TRANSCRIBED, capture=raw, artifacts=pair, transcript=transcript
        )

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise _Cancelled()

    def transcribe_file(self, audio_path: Union[str, Path]) -> NoteResult:
        """Transcribe an existing note's audio and write its ``.txt`` sibling."""
        audio_path = Path(audio_path)
        pair = ArtifactPair.for_stem(audio_path.parent, audio_path.stem)
        try:
            raw = read_audio(audio_path)
        except Exception as e:
            logger.error(f"🛑 Failed to load {audio_path}: {e}")
            error = VoiceNoteError(f"Failed to load {audio_path}: {e}")
            return NoteResult(NoteStatus.FAILED, artifacts=pair, error=error)

        try:
            signal = normalize(raw)
        except InvalidChannelCount as e:
            return NoteResult(NoteStatus.FAILED, capture=raw, artifacts=pair, error=e)
        return self._transcribe_into(pair, raw, signal)

    def retranscribe_pending(self, store: Optional[NoteStore] = None) -> List[NoteResult]:
        """Transcribe every note that has audio frames but no transcript."""
        store = store or NoteStore(self.writer.target_dir)
        pending = store.pending()
        logger.info(f"{len(pending)} notes pending transcription")
        return [self.transcribe_file(pair.audio_path) for pair in pending]

    def close(self, wait: bool = True) -> None:
        """End the session: stop capture, cancel queued work, free the model."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            if self._state is CaptureState.CAPTURING:
                try:
                    self.capture.stop()
                except Exception as e:
                    logger.error(f"🛑 Error stopping capture during close: {e}")
                self._state = CaptureState.IDLE

        self._cancel.set()
        for future in list(self._futures):
            future.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=True)
            self._executor = None
        self.transcriber.cleanup()
        logger.info("Session closed")

    def __enter__(self) -> "RecordingSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def default_device_name() -> Optional[str]:
    """Configured input device name, if any."""
    return config.get("audio.input_device_name")
