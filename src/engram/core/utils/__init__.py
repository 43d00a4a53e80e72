"""Utility helpers shared across Engram packages."""

from engram.core.utils.logging import configure_logger

__all__ = ["configure_logger"]
