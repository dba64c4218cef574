"""Core logging implementation for adaptly."""

import logging
import sys
from typing import Optional

__all__ = ["get_logger", "parse_level", "setup_logging"]

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Translate a level name ("debug", "info", "warn", "error") to a level.

    Args:
        value: Level name or numeric level.
        default: Level returned for unknown or missing values.

    Returns:
        Numeric logging level.
    """
    if isinstance(value, int):
        return value
    if not value:
        return default
    return _LEVELS.get(value.strip().lower(), default)


def setup_logging(level: int | str = logging.INFO, stream=sys.stderr) -> None:
    """Configure basic logging.

    Args:
        level: Logging level or level name.
        stream: Output stream.
    """
    logging.basicConfig(
        level=parse_level(level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=stream,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Name of the logger.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name or "adaptly")
