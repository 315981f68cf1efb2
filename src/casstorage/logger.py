"""logger.py - Logging helpers for casstorage"""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "CASSTORAGE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logging.getLogger("casstorage").addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """Attach a stream handler to the package logger.

    The level defaults to $CASSTORAGE_LOG_LEVEL, then INFO. Calling this
    more than once does not stack handlers.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = level.upper()
    root = logging.getLogger("casstorage")
    root.setLevel(level)
    if not any(getattr(h, "_casstorage", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._casstorage = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root
