# tests/unit/logging/test_unit_logging.py — v3
"""Tests for logging/ — context variables, formatters, rotating handler."""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler

import pytest

from actionextractor.logging.context import (
    clear_context,
    get_context,
    set_request_context,
    set_step_context,
)
from actionextractor.logging.handlers import create_rotating_handler, parse_size
from actionextractor.logging.logger import (
    ROOT_LOGGER,
    SERVER_LOGGERS,
    JsonFormatter,
    TextFormatter,
    setup_logging,
)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("actionextractor.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.step is None

    def test_set_request_context(self):
        set_request_context("req-1", user_id="u1", content_identity="dQw4w9WgXcQ")
        ctx = get_context()
        assert ctx.request_id == "req-1"
        assert ctx.user_id == "u1"
        assert ctx.content_identity == "dQw4w9WgXcQ"

    def test_as_dict_filters_none(self):
        set_request_context("req-1")
        d = get_context().as_dict()
        assert d == {"request_id": "req-1"}

    def test_clear(self):
        set_request_context("req-1", user_id="u1")
        set_step_context("analyzing")
        clear_context()
        assert get_context().as_dict() == {}


class TestFormatters:
    def teardown_method(self):
        clear_context()

    def test_json_includes_context_and_data(self):
        set_request_context("req-12345678", user_id="u1")
        set_step_context("transcript")
        line = JsonFormatter().format(_record(data={"attempt": 2}))
        entry = json.loads(line)
        assert entry["message"] == "hello"
        assert entry["step"] == "transcript"
        assert entry["request_id"] == "req-12345678"
        assert entry["data"] == {"attempt": 2}

    def test_text_shows_short_request_id_and_step(self):
        set_request_context("abcdef0123456789")
        set_step_context("language")
        line = TextFormatter().format(_record())
        assert "[abcdef01]" in line
        assert "(language)" in line
        assert line.endswith("- hello")


class TestHandlers:
    @pytest.mark.parametrize("value,expected", [
        ("10MB", 10 * 1024**2), ("512KB", 512 * 1024), ("1GB", 1024**3), ("100", 100),
    ])
    def test_parse_size(self, value, expected):
        assert parse_size(value) == expected

    def test_parse_size_invalid(self):
        with pytest.raises(ValueError):
            parse_size("ten megs")

    def test_rotating_handler_creates_parent(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "logs" / "app.log", rotation="1KB", retention=2)
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 1024
            assert handler.backupCount == 2
            assert (tmp_path / "logs").is_dir()
        finally:
            handler.close()


class TestSetupLogging:
    def teardown_method(self):
        for name in (ROOT_LOGGER, *SERVER_LOGGERS):
            logger = logging.getLogger(name)
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
        for name in SERVER_LOGGERS:
            logging.getLogger(name).propagate = True

    def test_configures_root_logger(self, tmp_path):
        setup_logging(level="DEBUG", log_format="text", log_file=tmp_path / "app.log")
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert isinstance(root.handlers[0].formatter, TextFormatter)
        assert root.handlers[0].stream is sys.stderr

    def test_reinit_does_not_duplicate(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1

    def test_server_loggers_share_handlers(self):
        setup_logging(log_format="json")
        root_handlers = logging.getLogger(ROOT_LOGGER).handlers
        for name in SERVER_LOGGERS:
            assert logging.getLogger(name).handlers == root_handlers
            assert logging.getLogger(name).propagate is False

    def test_sdk_loggers_quieted(self):
        setup_logging(level="INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        setup_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG
