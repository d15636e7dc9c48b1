"""Signal conditioning for the recognition engine.

Two pure stages sit between capture and transcription:

- ``normalize`` averages interleaved PCM16 channels down to mono float32 in
  [-1, 1]. Out-of-phase channels cancel; this is an averaging mix, not a
  peak-preserving one.
- ``resample`` converts the mono signal to the model rate by linear
  interpolation.
"""

import numpy as np

from voicenote.audio.types import RawCapture
from voicenote.utils.exceptions import EmptyInput, InvalidChannelCount
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)

FULL_SCALE = 32768.0


def normalize(raw: RawCapture) -> np.ndarray:
    """Downmix interleaved PCM16 to mono float32.

    Args:
        raw: Captured audio.

    Returns:
        Mono float32 array of ``raw.frame_count`` samples in [-1, 1].

    Raises:
        InvalidChannelCount: If the capture reports no channels.
    """
    if raw.channels <= 0:
        raise InvalidChannelCount(f"Invalid channel count: {raw.channels}")

    frames = raw.frames().astype(np.int32)
    summed = frames.sum(axis=1, dtype=np.int64)
    mono = summed.astype(np.float32) / np.float32(raw.channels * FULL_SCALE)
    np.clip(mono, -1.0, 1.0, out=mono)

    logger.debug(
        f"Normalized {raw.frame_count} frames ({raw.channels}ch @ {raw.sample_rate}Hz)"
    )
    return mono


def expected_length(in_frames: int, source_rate: int, target_rate: int) -> int:
    """Number of output frames for a rate conversion, rounded half up."""
    return int(in_frames * target_rate / source_rate + 0.5)


def resample(signal: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Resample a mono signal by linear interpolation.

    Args:
        signal: Mono float32 samples at ``source_rate``.
        source_rate: Input sample rate in Hz.
        target_rate: Output sample rate in Hz.

    Returns:
        The input array itself when the rates match, otherwise a new float32
        array of ``expected_length(len(signal), source_rate, target_rate)``
        samples.

    Raises:
        EmptyInput: If ``signal`` has no frames.
    """
    in_frames = len(signal)
    if in_frames == 0:
        raise EmptyInput("No audio frames to resample")
    if source_rate <= 0 or target_rate <= 0:
        raise ValueError(f"Invalid sample rates: {source_rate} -> {target_rate}")

    if source_rate == target_rate:
        return signal

    out_frames = expected_length(in_frames, source_rate, target_rate)
    ratio = source_rate / target_rate

    src_pos = np.arange(out_frames, dtype=np.float64) * ratio
    idx = np.floor(src_pos).astype(np.int64)
    # Rounding can place the final position one frame past the input
    idx = np.minimum(idx, in_frames - 1)
    frac = src_pos - idx
    nxt = np.minimum(idx + 1, in_frames - 1)

    source = np.asarray(signal, dtype=np.float64)
    v0 = source[idx]
    v1 = source[nxt]
    resampled = (v0 * (1.0 - frac) + v1 * frac).astype(np.float32)

    logger.debug(
        f"Resampled audio: {in_frames} -> {out_frames} frames "
        f"({source_rate} -> {target_rate} Hz)"
    )
    return resampled


def signal_stats(signal: np.ndarray, sample_rate: int) -> dict:
    """Basic level statistics used for diagnostics logging."""
    if len(signal) == 0:
        return {"duration": 0.0, "rms": 0.0, "peak": 0.0, "clipped": 0}
    return {
        "duration": len(signal) / sample_rate,
        "rms": float(np.sqrt(np.mean(np.square(signal, dtype=np.float64)))),
        "peak": float(np.max(np.abs(signal))),
        "clipped": int(np.sum(np.abs(signal) > 0.99)),
    }
