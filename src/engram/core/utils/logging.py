"""Logging helpers for Engram components.

Purpose:
    Provide a centralised helper for configuring module-level loggers with a
    consistent formatter and level, used by embedders that do not route
    logging through the CLI's rich handler.
External Dependencies:
    Uses only the Python standard library `logging` module.
Fallback Semantics:
    Loggers that already carry handlers are returned untouched.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: int | str | None = None) -> int:
    """Translate a level name or number into a ``logging`` constant.

    ``None`` falls back to ``ENGRAM_LOG_LEVEL`` and then to ``INFO``. Unknown
    names resolve to ``INFO`` as well.
    """

    if level is None:
        level = os.environ.get("ENGRAM_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logger(name: str, level: int | str | None = None) -> logging.Logger:
    """Summary: Return a logger configured with a standard formatter.
    Parameters:
        name: Name of the logger to retrieve.
        level: Optional logging level override, as a number or a level name.
            Defaults to ``ENGRAM_LOG_LEVEL`` or ``logging.INFO``.
    Returns:
        logging.Logger: Configured logger instance.
    Side Effects:
        Adds a ``StreamHandler`` with a standard formatter when the logger does
        not already have handlers attached.
    """

    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(resolve_level(level))

    return logger


__all__ = ["LOG_FORMAT", "configure_logger", "resolve_level"]
