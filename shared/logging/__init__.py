"""Shared logging configuration."""

import logging
import sys
from typing import Optional, Union


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: Union[int, str]) -> int:
    """Turn a level name like "debug" into its numeric value."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    # getLevelName returns "Level X" for unknown names
    return value if isinstance(value, int) else logging.INFO


def setup_logger(
    name: str,
    level: Union[int, str] = logging.INFO,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name (typically __name__)
        level: Logging level, numeric or by name
        format_string: Optional custom format string

    Returns:
        Configured logger
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    level = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding multiple handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        formatter = logging.Formatter(format_string)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
