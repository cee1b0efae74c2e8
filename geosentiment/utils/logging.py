"""Process-wide logging setup for pipelines, scripts and the dashboard."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_root_logger(level: int | str | None = None) -> None:
    """Attach a stream handler to the root logger unless one is already present.

    ``level`` falls back to ``APP_LOG_LEVEL`` (default ``INFO``).
    """
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(_coerce_level(level if level is not None else os.getenv("APP_LOG_LEVEL", "INFO")))


def set_log_level(level: int | str) -> None:
    """Change the root level after configuration, e.g. from a ``--log-level`` flag."""
    configure_root_logger(level)
    logging.getLogger().setLevel(_coerce_level(level))


@lru_cache(maxsize=None)
def _named_logger(name: str) -> logging.Logger:
    configure_root_logger()
    return logging.getLogger(name)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the logger for ``name``, defaulting to ``APP_LOGGER_NAME`` or ``geosentiment``."""
    return _named_logger(name or os.getenv("APP_LOGGER_NAME", "geosentiment"))


def _coerce_level(level: int | str) -> int | str:
    return level.upper() if isinstance(level, str) else level
