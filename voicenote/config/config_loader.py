"""Configuration loader for voicenote."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import filelock
import ruamel.yaml

from voicenote.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_MISSING = object()


class ConfigLoader:
    """Loads and manages application configuration from YAML files."""

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize the configuration loader.

        Args:
            config_path: Path to the main configuration file. Defaults to the
                VOICENOTE_CONFIG environment variable, then ``config.yml``.
        """
        config_path = config_path or os.environ.get("VOICENOTE_CONFIG", "config.yml")
        self.config_path = Path(config_path)
        self.backup_path = Path(f"{config_path}.backup")
        self.config: Dict[str, Any] = {}
        self.validated_config = None
        self._defaults: Dict[str, Any] = {}
        self.load()

    def _yaml(self) -> ruamel.yaml.YAML:
        yaml_loader = ruamel.yaml.YAML()
        yaml_loader.preserve_quotes = True
        yaml_loader.width = 4096
        return yaml_loader

    def load(self) -> None:
        """Load configuration from the YAML file.

        A missing file is not an error: validated defaults are used instead.
        """
        if self.config_path.exists():
            with open(self.config_path, "r", encoding="utf-8") as f:
                self.config = self._yaml().load(f) or {}
        else:
            logger.debug(f"Config file not found, using defaults: {self.config_path}")
            self.config = {}

        self._validate_config()

    def save(self) -> None:
        """Save configuration to YAML file with atomic write and backup."""
        temp_name = None
        try:
            self._create_backup()
            self._validate_config()

            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                delete=False,
                suffix=".tmp",
                dir=self.config_path.parent,
                encoding="utf-8",
            ) as temp_file:
                temp_name = temp_file.name
                self._yaml().dump(self.config, temp_file)
                temp_file.flush()

            lock = filelock.FileLock(f"{self.config_path}.lock")
            with lock.acquire(timeout=10):
                shutil.move(temp_name, self.config_path)

        except Exception as e:
            if temp_name and Path(temp_name).exists():
                Path(temp_name).unlink()
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Values missing from the file fall back to the schema defaults, then
        to ``default``.

        Args:
            key: Configuration key (e.g., "notes.directory" or "asr.model").
            default: Default value if key not found.

        Returns:
            Configuration value or default.
        """
        for source in (self.config, self._defaults):
            value = self._lookup(source, key)
            if value is not _MISSING:
                return value
        return default

    @staticmethod
    def _lookup(source: Dict[str, Any], key: str) -> Any:
        value: Any = source
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return _MISSING
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., "audio.input_device_name").
            value: Value to set.
        """
        keys = key.split(".")
        config_ref = self.config

        for k in keys[:-1]:
            if k not in config_ref or not isinstance(config_ref[k], dict):
                config_ref[k] = {}
            config_ref = config_ref[k]

        config_ref[keys[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get the entire configuration dictionary.

        Returns:
            Complete configuration dictionary.
        """
        return dict(self.config)

    def _validate_config(self) -> None:
        """Validate the loaded configuration using Pydantic schemas."""
        from .validators import VoiceNoteConfig, validate_config

        self._defaults = VoiceNoteConfig().model_dump()
        try:
            self.validated_config = validate_config(dict(self.config))
        except ValueError as e:
            # Continue with unvalidated config but log the error
            logger.error(f"Configuration validation failed: {e}")
            self.validated_config = None

    def _create_backup(self) -> None:
        """Create a backup of the current configuration file."""
        if self.config_path.exists():
            try:
                shutil.copy2(self.config_path, self.backup_path)
                logger.debug(f"Configuration backup created: {self.backup_path}")
            except OSError as e:
                logger.warning(f"Failed to create configuration backup: {e}")

    def restore_from_backup(self) -> bool:
        """Restore configuration from backup file.

        Returns:
            True if restore was successful, False otherwise.
        """
        if not self.backup_path.exists():
            logger.error("No backup file found for restore")
            return False

        try:
            shutil.copy2(self.backup_path, self.config_path)
            self.load()
            logger.info("Configuration restored from backup successfully")
            return True
        except OSError as e:
            logger.error(f"Failed to restore configuration from backup: {e}")
            return False


# Global config instance
config = ConfigLoader()
