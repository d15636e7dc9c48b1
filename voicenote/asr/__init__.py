"""Speech recognition: engine backends and the transcription invoker."""

from voicenote.asr.transcriber import EngineContextPool, Transcriber
from voicenote.asr.types import DecodeParams, TranscriptionResult

__all__ = ["DecodeParams", "EngineContextPool", "Transcriber", "TranscriptionResult"]
