"""Logger configuration using loguru.

The package logs through ``from loguru import logger`` and is disabled by
default (``pybist/__init__.py``), so importing it never adds output to a host
application.  ``setup_logger`` turns it on for the command line entry point
or for anyone who wants to see block dispatch while debugging a test file.
"""

from __future__ import annotations

import sys
from typing import Any, Optional

from loguru import logger

VALID_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:{line} - "
    "<level>{message}</level>"
)


def setup_logger(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    stream: Any = sys.stderr,
) -> None:
    """Route pybist log records to ``stream`` (and optionally ``log_file``).

    Raises:
        ValueError: If an invalid log level is provided
    """
    from .config import BistConfig

    level = (log_level or BistConfig.from_env().log_level).upper()
    if level not in VALID_LEVELS:
        raise ValueError(f"Invalid log level '{level}'. Must be one of: {', '.join(VALID_LEVELS)}")

    logger.remove()
    logger.add(stream, format=_FORMAT, level=level, colorize=False)

    if log_file:
        logger.add(log_file, format=_FORMAT, level=level, colorize=False)

    logger.enable("pybist")
