"""Logging configuration for the minutely process."""
from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from .config import LoggingConfig

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(config: LoggingConfig, name: str = "minutely") -> logging.Logger:
    """Attach a single stream handler to the ``name`` logger.

    Repeated calls replace the handler instead of stacking new ones.
    """

    logger = logging.getLogger(name)
    logger.setLevel(config.level.upper())
    logger.handlers.clear()

    if config.json:
        formatter: logging.Formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    else:
        formatter = logging.Formatter(_TEXT_FORMAT)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
