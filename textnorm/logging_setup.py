from __future__ import annotations

import logging
import sys

from .settings import get_settings


def setup_logging(level: str | None = None) -> None:
    """Route textnorm logs to stdout using the configured format."""
    settings = get_settings()
    level = (level or settings.log_level).upper()

    logger = logging.getLogger("textnorm")
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(settings.log_format, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
