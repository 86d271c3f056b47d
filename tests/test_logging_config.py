"""
test_logging_config.py — Tests for salestrack/logging_config.py

Verifies Loguru setup, stdlib logging interception, level control and
the scan run / item context in development lines.
Uses loguru's sink capture for assertions.

Called by: pytest
Depends on: salestrack/logging_config.py
"""

import logging
import os
from unittest.mock import patch

import pytest
from loguru import logger

from salestrack.logging_config import _console_format, setup_logging


@pytest.fixture(autouse=True)
def _clean_loguru():
    """Remove all handlers before/after each test for isolation."""
    logger.remove()
    yield
    logger.remove()


def test_setup_logging_adds_handler():
    """setup_logging() should add at least one Loguru handler."""
    assert len(logger._core.handlers) == 0
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()
    assert len(logger._core.handlers) > 0


def test_stdlib_logging_intercepted():
    """After setup, salestrack's stdlib loggers go through Loguru."""
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()

    # setup_logging() calls logger.remove(), so the capture sink goes on after
    messages = []
    logger.add(lambda m: messages.append(str(m)), format="{message}")

    logging.getLogger("salestrack.scan").warning("Scan run 7 failed: boom")

    assert any("Scan run 7 failed" in m for m in messages)


def test_noisy_loggers_quieted():
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("apscheduler").level == logging.WARNING


def test_log_level_from_env():
    """LOG_LEVEL env var controls the minimum level of the stdout sink."""
    with patch.dict(os.environ, {"APP_ENV": "development", "LOG_LEVEL": "WARNING"}):
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    assert all(c.kwargs.get("level") == "WARNING" for c in mock_add.call_args_list)


def test_production_mode_uses_serialize():
    """APP_ENV=production switches every sink to JSON output."""
    with patch.dict(os.environ, {"APP_ENV": "production"}):
        # The rotating file sink path may not exist in test
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    assert len(mock_add.call_args_list) == 2
    assert all(c.kwargs.get("serialize") is True for c in mock_add.call_args_list)
    rotating = mock_add.call_args_list[1]
    assert rotating.kwargs["rotation"] == "50 MB"
    assert rotating.kwargs["retention"] == "7 days"


def test_development_sink_uses_console_format():
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    assert mock_add.call_args_list[0].kwargs["format"] is _console_format


class TestConsoleFormat:
    def test_plain_record(self):
        fmt = _console_format({"extra": {}})
        assert "run=" not in fmt
        assert "item=" not in fmt
        assert fmt.endswith("{message}\n{exception}")

    def test_scan_run_only(self):
        fmt = _console_format({"extra": {"scan_run_id": 12}})
        assert "run={extra[scan_run_id]}" in fmt
        assert "item=" not in fmt

    def test_scan_run_and_item(self):
        fmt = _console_format({"extra": {"scan_run_id": 12, "source_id": "1001"}})
        assert fmt.index("run={extra[scan_run_id]}") < fmt.index("item={extra[source_id]}")

    def test_rendered_line_carries_context(self):
        lines = []
        logger.add(lambda m: lines.append(str(m)), format=_console_format, colorize=False)
        with logger.contextualize(scan_run_id=12, source_id="1001"):
            logger.info("Item fetched")
        logger.info("Idle")
        assert "Item fetched run=12 item=1001" in lines[0]
        assert "run=" not in lines[1]
