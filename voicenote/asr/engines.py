"""Recognition engine backends.

An engine loads a model into an ``EngineContext``; a context runs inference
on a 16 kHz mono float32 buffer and then exposes the recognized segments by
index until it is released.
"""

import gc
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol

import numpy as np
import soundfile as sf
from tqdm import tqdm

from voicenote.asr.types import DecodeParams
from voicenote.config.config_loader import config
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)


class EngineContext(Protocol):
    """A loaded model able to run inference."""

    def run(self, samples: np.ndarray, params: DecodeParams) -> None: ...

    def segment_count(self) -> int: ...

    def segment_text(self, index: int) -> str: ...

    def release(self) -> None: ...


class RecognitionEngine(Protocol):
    """Factory for engine contexts."""

    def load_model(self, model: str, params: DecodeParams) -> Optional[EngineContext]: ...


def _get_cache_dir() -> Path:
    """Get the Hugging Face cache directory."""
    cache_dir = (
        os.environ.get("HUGGINGFACE_HUB_CACHE")
        or os.environ.get("TRANSFORMERS_CACHE")
        or os.environ.get("HF_HOME")
    )
    if cache_dir:
        return Path(cache_dir)
    return Path.home() / ".cache" / "huggingface" / "hub"


def is_model_cached(model: str) -> bool:
    """Check if a model is available locally.

    Args:
        model: Hugging Face model id or local path.

    Returns:
        True if the model is a local path or already in the hub cache.
    """
    if Path(model).exists():
        return True
    model_hash = model.replace("/", "--")
    return any(_get_cache_dir().glob(f"models--{model_hash}*"))


class _SegmentBuffer:
    """Segment storage shared by the context implementations."""

    def __init__(self) -> None:
        self._segments: List[str] = []

    def segment_count(self) -> int:
        return len(self._segments)

    def segment_text(self, index: int) -> str:
        return self._segments[index]


class ParakeetContext(_SegmentBuffer):
    """Parakeet-MLX model wrapper.

    Parakeet transcribes from a file, so each run writes the buffer to a
    temporary WAV at the model rate.
    """

    def __init__(self, model, sample_rate: int) -> None:
        super().__init__()
        self.model = model
        self.sample_rate = sample_rate

    def run(self, samples: np.ndarray, params: DecodeParams) -> None:
        if self.model is None:
            raise RuntimeError("Context has been released")

        # MLX schedules its own threads; thread_count is only a hint here
        logger.debug(f"Parakeet inference on {len(samples)} samples")
        self._segments = []
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as temp_file:
                temp_path = temp_file.name
            sf.write(temp_path, samples, self.sample_rate, subtype="FLOAT")

            result = self.model.transcribe(temp_path)

            sentences = getattr(result, "sentences", None)
            if sentences is not None:
                self._segments = [sentence.text for sentence in sentences]
            else:
                text = getattr(result, "text", "")
                self._segments = [text] if text else []
        finally:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError as e:
                    logger.warning(f"Failed to cleanup temporary file {temp_path}: {e}")

    def release(self) -> None:
        self.model = None
        self._segments = []
        gc.collect()


class ParakeetEngine:
    """Loads NVIDIA Parakeet models through parakeet-mlx (Apple Silicon)."""

    def __init__(self, sample_rate: int = 16000) -> None:
        self.sample_rate = sample_rate

    def load_model(self, model: str, params: DecodeParams) -> ParakeetContext:
        from parakeet_mlx import from_pretrained

        gc.collect()
        desc = "Loading model" if is_model_cached(model) else "Downloading model"
        logger.info(f"{desc}: {model}")
        with tqdm(total=1, desc=desc, bar_format="{desc}: {bar}") as pbar:
            loaded = from_pretrained(model)
            pbar.update(1)
        return ParakeetContext(loaded, self.sample_rate)


class WhisperContext(_SegmentBuffer):
    """faster-whisper model wrapper."""

    def __init__(self, model) -> None:
        super().__init__()
        self.model = model

    def run(self, samples: np.ndarray, params: DecodeParams) -> None:
        if self.model is None:
            raise RuntimeError("Context has been released")

        segments, info = self.model.transcribe(audio=samples, beam_size=5)
        # The segment iterator is lazy; decoding happens here
        self._segments = [segment.text for segment in segments]
        logger.debug(
            f"Whisper detected language {getattr(info, 'language', 'unknown')}"
        )

    def release(self) -> None:
        self.model = None
        self._segments = []
        gc.collect()


class WhisperEngine:
    """Loads Whisper models through faster-whisper (CPU or CUDA)."""

    def __init__(self, device: str = "cpu", compute_type: str = "int8") -> None:
        self.device = device
        self.compute_type = compute_type

    def load_model(self, model: str, params: DecodeParams) -> WhisperContext:
        from faster_whisper import WhisperModel

        logger.info(
            f"Loading Whisper model '{model}' ({self.device}/{self.compute_type}, "
            f"{params.thread_count} threads)"
        )
        loaded = WhisperModel(
            model,
            device=self.device,
            compute_type=self.compute_type,
            cpu_threads=params.thread_count,
        )
        return WhisperContext(loaded)


def create_engine(backend: Optional[str] = None) -> RecognitionEngine:
    """Build the configured recognition engine.

    Args:
        backend: "parakeet" or "whisper"; defaults to ``asr.backend``.

    Returns:
        A RecognitionEngine instance.
    """
    backend = backend or config.get("asr.backend", "parakeet")
    if backend == "parakeet":
        return ParakeetEngine(config.get("asr.target_sample_rate", 16000))
    if backend == "whisper":
        return WhisperEngine(
            device=config.get("asr.whisper_device", "cpu"),
            compute_type=config.get("asr.whisper_compute_type", "int8"),
        )
    raise ValueError(f"Unknown ASR backend: {backend}")
