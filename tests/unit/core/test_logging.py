"""Tests for the logger configuration helper."""

import logging

from engram.core.utils.logging import configure_logger, resolve_level


def test_resolve_level_from_name_and_environment(monkeypatch) -> None:
    monkeypatch.setenv("ENGRAM_LOG_LEVEL", "debug")

    assert resolve_level() == logging.DEBUG
    assert resolve_level("warning") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("not-a-level") == logging.INFO


def test_configure_logger_adds_single_handler() -> None:
    logger = configure_logger("engram.tests.configured", "ERROR")
    again = configure_logger("engram.tests.configured", "DEBUG")

    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.ERROR
