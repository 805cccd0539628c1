"""Logging setup for inkroll."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from .settings import get_settings

LOGGER_NAME = "inkroll"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the package logger once and set its level."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level or get_settings().log_level)

    # Prevent duplicate handlers on repeated calls.
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "LOGGER_NAME"]
