"""Transcription of conditioned audio through a recognition engine."""

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

import numpy as np
import psutil

from voicenote.asr.engines import EngineContext, RecognitionEngine, create_engine
from voicenote.asr.types import DecodeParams, TranscriptionResult
from voicenote.config.config_loader import config
from voicenote.utils.exceptions import InferenceFailed, ModelLoadFailed
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)


def load_context(
    engine: RecognitionEngine, model: str, params: DecodeParams
) -> EngineContext:
    """Load a model, mapping every failure to ModelLoadFailed."""
    try:
        context = engine.load_model(model, params)
    except Exception as e:
        logger.error(f"Failed to load model '{model}': {e}")
        raise ModelLoadFailed(f"Failed to load model '{model}': {e}") from e

    if context is None:
        logger.error(f"Failed to load model '{model}'")
        raise ModelLoadFailed(f"Failed to load model '{model}'")
    return context


def get_memory_usage() -> dict:
    """Get current process memory usage.

    Returns:
        Dictionary with memory usage stats.
    """
    process = psutil.Process()
    memory_info = process.memory_info()
    return {
        "rss_mb": memory_info.rss / 1024 / 1024,
        "vms_mb": memory_info.vms / 1024 / 1024,
        "percent": process.memory_percent(),
    }


class EngineContextPool:
    """Owns one long-lived engine context, loaded on first use.

    Access is serialized: a context runs one inference at a time. When
    ``auto_unload_timeout`` is positive the context is released after that
    many idle seconds and reloaded on the next acquire.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        model: str,
        params: DecodeParams,
        auto_unload_timeout: float = 0,
    ) -> None:
        self.engine = engine
        self.model = model
        self.params = params
        self.auto_unload_timeout = auto_unload_timeout
        self.load_count = 0
        self.last_used_time = 0.0
        self._context: Optional[EngineContext] = None
        self._lock = threading.RLock()
        self._unload_timer: Optional[threading.Timer] = None

    @property
    def is_loaded(self) -> bool:
        return self._context is not None

    @contextmanager
    def acquire(self) -> Iterator[EngineContext]:
        """Borrow the shared context, loading it if needed.

        Raises:
            ModelLoadFailed: If the model cannot be loaded.
        """
        with self._lock:
            self._cancel_unload_timer()
            if self._context is None:
                self._context = load_context(self.engine, self.model, self.params)
                self.load_count += 1
                memory_stats = get_memory_usage()
                logger.info(
                    f"Model loaded - Memory usage: {memory_stats['rss_mb']:.1f}MB RSS"
                )
            try:
                yield self._context
            finally:
                self.last_used_time = time.time()
                self._schedule_unload()

    def unload(self) -> None:
        """Release the shared context if it is loaded."""
        with self._lock:
            self._cancel_unload_timer()
            if self._context is None:
                return
            context, self._context = self._context, None
            try:
                context.release()
            finally:
                logger.info(f"Model '{self.model}' unloaded")

    def _schedule_unload(self) -> None:
        if self.auto_unload_timeout <= 0 or self._context is None:
            return
        self._unload_timer = threading.Timer(
            self.auto_unload_timeout, self._check_auto_unload
        )
        self._unload_timer.daemon = True
        self._unload_timer.start()

    def _cancel_unload_timer(self) -> None:
        if self._unload_timer is not None:
            self._unload_timer.cancel()
            self._unload_timer = None

    def _check_auto_unload(self) -> None:
        """Unload the model if it has been idle past the timeout."""
        with self._lock:
            idle = time.time() - self.last_used_time
            if self._context is not None and idle >= self.auto_unload_timeout:
                logger.info(
                    f"Auto-unloading ASR model after {self.auto_unload_timeout}s "
                    "of inactivity"
                )
                self.unload()


class Transcriber:
    """Runs the recognition engine over a 16 kHz mono signal.

    With ``keep_model_loaded`` the model context lives in an
    ``EngineContextPool`` and is reused; otherwise every call loads the
    model, runs inference, and releases it again.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        model: str,
        params: Optional[DecodeParams] = None,
        keep_model_loaded: bool = True,
        auto_unload_timeout: float = 0,
        sample_rate: int = 16000,
    ) -> None:
        self.engine = engine
        self.model = model
        self.params = params or DecodeParams()
        self.keep_model_loaded = keep_model_loaded
        self.sample_rate = sample_rate
        self.pool: Optional[EngineContextPool] = None
        if keep_model_loaded:
            self.pool = EngineContextPool(
                engine, model, self.params, auto_unload_timeout
            )

        logger.info(
            f"Transcriber initialized with model: {model} "
            f"({'shared context' if keep_model_loaded else 'load per call'})"
        )

    @classmethod
    def from_config(cls, engine: Optional[RecognitionEngine] = None) -> "Transcriber":
        """Build a transcriber from the ``asr`` configuration section."""
        return cls(
            engine or create_engine(),
            config.get("asr.model"),
            DecodeParams(thread_count=config.get("asr.thread_count", 4)),
            keep_model_loaded=config.get("asr.keep_model_loaded", True),
            auto_unload_timeout=config.get("asr.auto_unload_timeout", 0),
            sample_rate=config.get("asr.target_sample_rate", 16000),
        )

    def transcribe(self, signal: np.ndarray) -> TranscriptionResult:
        """Transcribe a resampled signal.

        Args:
            signal: Mono float32 samples at ``self.sample_rate``.

        Returns:
            Segments in recognition order, unfiltered.

        Raises:
            ModelLoadFailed: If the model cannot be loaded.
            InferenceFailed: If the engine fails during inference.
        """
        samples = np.ascontiguousarray(signal, dtype=np.float32)
        logger.debug(
            f"🐛 Transcribing audio: {len(samples) / self.sample_rate:.2f}s "
            f"@ {self.sample_rate}Hz"
        )

        if self.pool is not None:
            with self.pool.acquire() as context:
                try:
                    return self._infer(context, samples)
                except InferenceFailed:
                    self.pool.unload()
                    raise

        context = load_context(self.engine, self.model, self.params)
        try:
            return self._infer(context, samples)
        finally:
            context.release()

    def _infer(self, context: EngineContext, samples: np.ndarray) -> TranscriptionResult:
        try:
            context.run(samples, self.params)
            count = context.segment_count()
            segments = [context.segment_text(i) or "" for i in range(count)]
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            raise InferenceFailed(f"Inference failed: {e}") from e

        logger.info(f"Transcription complete: {len(segments)} segments")
        return TranscriptionResult(segments)

    def cleanup(self) -> None:
        """Release any model context held by this transcriber."""
        if self.pool is not None:
            self.pool.unload()
