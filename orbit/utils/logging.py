"""
Logging utilities for Orbit.

Provides consistent logging configuration for the relay server,
transcriber and receiver processes.
"""

import logging
import os
import sys
from typing import Literal

# Default log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Log level type
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def setup_logging(
    name: str | None = None,
    level: LogLevel | None = None,
    format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure logging and return a logger.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.
        level: Log level. Defaults to LOG_LEVEL env var or INFO.
        format: Log format string.

    Returns:
        Configured logger instance.

    Usage:
        from orbit.utils import setup_logging
        logger = setup_logging(__name__)
        logger.info("Receiver attached")
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()

    log_level = getattr(logging, level, logging.INFO)

    # Root handler is only installed once
    logging.basicConfig(
        level=log_level,
        format=format,
        stream=sys.stdout,
    )

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    return logger


def set_log_level(level: LogLevel) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger().setLevel(log_level)
