"""Logging configuration for the ``finease`` package.

Entrypoints call ``configure_logging`` at startup. Library modules only use
``logging.getLogger(__name__)`` and never attach handlers themselves.
"""
from __future__ import annotations

import logging
import sys

_PKG_LOGGER_NAME = "finease"
_CONFIGURED = False


def parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(level: int | str | None = None) -> None:
    """Attach the package handler once; later calls only change the level."""
    global _CONFIGURED

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    logger.setLevel(parse_level(level))
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True
