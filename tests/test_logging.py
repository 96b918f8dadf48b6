"""Tests for logging utilities."""

from __future__ import annotations

import logging

from inbox_sage.core.config import LoggingSettings
from inbox_sage.core.logging import configure_logging


def test_configure_logging_sets_root_level() -> None:
    """configure_logging should set the root logger level according to settings."""

    settings = LoggingSettings(level="DEBUG", structured=False)
    configure_logging(settings)
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_quiets_http_clients() -> None:
    configure_logging(LoggingSettings(level="DEBUG", structured=True))

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
