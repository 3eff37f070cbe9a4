"""Logging setup for the Jar Tracker CLI."""

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def coerce_level(value: str | int | None) -> int:
    """Map a level name (or number) to a logging level, defaulting to WARNING."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.WARNING)
    return logging.WARNING


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Configure the ``jar_tracker`` logger hierarchy.

    The ``JAR_TRACKER_LOG_LEVEL`` environment variable takes precedence over
    the ``level`` argument. Calling this more than once only adjusts the level.
    """
    logger = logging.getLogger("jar_tracker")
    resolved = coerce_level(os.environ.get("JAR_TRACKER_LOG_LEVEL", level))
    logger.setLevel(resolved)

    if not any(getattr(h, "_jar_tracker_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._jar_tracker_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(resolved)

    return logger
