"""Logging setup."""
from __future__ import annotations

import logging

from .config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    settings = settings or get_settings()
    logger = logging.getLogger("forgery_guard")
    logger.setLevel(settings.log_level.upper())
    if not any(getattr(handler, "_forgery_guard", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._forgery_guard = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
