"""Device management for audio capture.

This module handles input device enumeration and name lookup for the
SoundDeviceCapture adapter.
"""

from typing import Any, Optional

import sounddevice as sd

from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_DEVICE_NAMES = ("", "default")


def is_capture_available() -> bool:
    """Check whether the host exposes at least one input device.

    Returns:
        True if an input-capable device exists.
    """
    try:
        devices = sd.query_devices()
    except Exception as e:
        logger.warning(f"Device query failed: {e}")
        return False

    return any(device["max_input_channels"] > 0 for device in devices)


def list_input_devices() -> list[dict[str, Any]]:
    """Get list of available audio input devices.

    Returns:
        List of device information dictionaries.
    """
    devices = []
    for i, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append(
                {
                    "index": i,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "default_samplerate": device["default_samplerate"],
                }
            )
    return devices


def find_input_device(name: str) -> Optional[int]:
    """Resolve an input device name to its index.

    An exact (case-insensitive) name match wins over a substring match.

    Args:
        name: Device name as shown by ``list_input_devices``.

    Returns:
        Device index, or None if no input device matches.
    """
    wanted = name.strip().lower()
    if wanted in DEFAULT_DEVICE_NAMES:
        return None

    try:
        devices = list_input_devices()
    except Exception as e:
        logger.warning(f"Device enumeration failed: {e}")
        return None

    for device in devices:
        if device["name"].lower() == wanted:
            return device["index"]
    for device in devices:
        if wanted in device["name"].lower():
            return device["index"]

    logger.debug(f"No input device matches '{name}'")
    return None


def get_device_info(device: Optional[int]) -> dict[str, Any]:
    """Get device information.

    Args:
        device: Device index or None for the default input device.

    Returns:
        Device information dictionary.
    """
    if device is None:
        return sd.query_devices(kind="input")
    return sd.query_devices(device)
