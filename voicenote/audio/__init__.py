"""Audio capture and processing modules.

This package provides the capture-to-signal half of the pipeline:
- types: RawCapture and capture state enums
- processing: PCM16 downmix and linear-interpolation resampling
- recorder: SoundDeviceCapture adapter (imports sounddevice)
- device_manager: Input device enumeration and name lookup
"""

from voicenote.audio.processing import normalize, resample
from voicenote.audio.types import CaptureState, DeviceBindResult, RawCapture

__all__ = ["CaptureState", "DeviceBindResult", "RawCapture", "normalize", "resample"]
