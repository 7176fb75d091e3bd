"""Tests for singleton logging configuration."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from codescan.logging_config import (
    _SUPPRESSED_LOGGERS,
    LOG_DATEFMT,
    LOG_FORMAT,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_flag() -> None:
    """Reset the singleton flag before each test."""
    import codescan.logging_config as mod

    mod._configured = False


def test_setup_logging_is_idempotent() -> None:
    """basicConfig runs once even when called twice."""
    with patch("codescan.logging_config.logging.basicConfig") as mock_bc:
        setup_logging()
        setup_logging("DEBUG")  # second call is no-op
        mock_bc.assert_called_once()


def test_level_name_is_case_insensitive() -> None:
    with patch("codescan.logging_config.logging.basicConfig") as mock_bc:
        setup_logging("debug")
    assert mock_bc.call_args.kwargs["level"] == logging.DEBUG


def test_suppressed_loggers_at_warning() -> None:
    """HTTP stack loggers are quieted to WARNING."""
    setup_logging()
    for name in _SUPPRESSED_LOGGERS:
        lg = logging.getLogger(name)
        assert lg.level == logging.WARNING, (
            f"Logger {name!r} level is {lg.level}, expected WARNING"
        )


def test_log_format_constants() -> None:
    assert "%(name)s" in LOG_FORMAT
    assert "%(message)s" in LOG_FORMAT
    assert LOG_DATEFMT
