"""
Dashboard logging setup.

Modules log through ``logging.getLogger(__name__)``; this configures the
root handler once for scripts and services embedding the dashboard core.
"""
from __future__ import annotations
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Configure root logging and return the dashboard's top-level logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger = logging.getLogger("verticals.consultancy")
    logger.setLevel(level)
    return logger
