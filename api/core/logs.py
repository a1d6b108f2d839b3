"""Logging setup shared by the HTTP handlers."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER = "api"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``api`` logger tree."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))
    if not any(getattr(h, "_fuelgo_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._fuelgo_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
