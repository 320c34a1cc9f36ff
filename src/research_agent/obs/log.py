"""Application-level logging setup."""

from __future__ import annotations

import logging
import os
import sys

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """Attach a stdout handler to the package logger and return it.

    The level defaults to `RESEARCH_AGENT_LOG_LEVEL` (INFO when unset).
    Calling this again replaces the previous handler.
    """
    if level is None:
        level = os.getenv("RESEARCH_AGENT_LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger("research_agent")
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
