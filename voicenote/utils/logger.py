"""Logging for voicenote.

Every module logger is a child of the ``voicenote`` logger, which owns the
handlers. They are attached once, on first use, from the ``logging``
section of the configuration.
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional, Union

from voicenote.config.config_loader import config

PACKAGE_LOGGER = "voicenote"
LOG_FILE_PREFIX = "voicenote"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class EmojiFormatter(logging.Formatter):
    """Console formatter that leads each line with a level emoji."""

    EMOJI_MAP = {
        logging.DEBUG: "🐛",
        logging.INFO: "🟢",
        logging.WARNING: "🟡",
        logging.ERROR: "🛑",
        logging.CRITICAL: "🛑",
    }

    def format(self, record: logging.LogRecord) -> str:
        emoji = self.EMOJI_MAP.get(record.levelno, "")
        return f"{emoji} {super().format(record)}"


def resolve_level(name: Union[str, int, None]) -> int:
    """Map a configured level name to a logging level; unknown names mean INFO."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def log_file_path(log_dir: Union[str, Path], day: Optional[date] = None) -> Path:
    """Daily log file inside ``log_dir``."""
    day = day or date.today()
    return Path(log_dir) / f"{LOG_FILE_PREFIX}-{day:%Y-%m-%d}.log"


def _configure_package_logger() -> logging.Logger:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.handlers:
        return package_logger

    log_format = config.get("logging.format", DEFAULT_FORMAT)
    package_logger.setLevel(resolve_level(config.get("logging.level", "INFO")))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(EmojiFormatter(log_format))
    package_logger.addHandler(console_handler)

    # An empty directory setting disables file logging
    log_dir = config.get("logging.directory", "logs")
    if log_dir:
        log_file = log_file_path(log_dir)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format))
        package_logger.addHandler(file_handler)

    return package_logger


def setup_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``, nested under the package logger.

    Args:
        name: Logger name (typically __name__). Names outside the package,
            such as ``__main__``, are placed under it.

    Returns:
        Logger whose records reach the package handlers.
    """
    _configure_package_logger()
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
