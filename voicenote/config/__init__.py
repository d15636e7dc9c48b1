"""Configuration loading and validation."""

from voicenote.config.config_loader import ConfigLoader, config

__all__ = ["ConfigLoader", "config"]
