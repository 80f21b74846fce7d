"""Process-wide logging setup."""

from __future__ import annotations

import logging

_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
_ROOT_LOGGER = "campus_assistant"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; repeated calls only update the level.
    """

    logger = logging.getLogger(_ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if getattr(logger, "_campus_configured", False):
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    logger._campus_configured = True  # type: ignore[attr-defined]
    return logger
