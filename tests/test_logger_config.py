"""Tests for logger_config module."""

import logging
import logging.handlers
import os
from pathlib import Path
from unittest import mock

import pytest

from message_viewer.logger_config import DEFAULT_FORMAT, get_log_level, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    """Put root and quiet logger levels back after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(logging.NOTSET)
    logging.getLogger("httpx").setLevel(logging.NOTSET)


class TestGetLogLevel:
    """Tests for get_log_level function."""

    def test_default_is_info(self):
        """Default log level is INFO when env var not set."""
        with mock.patch.dict(os.environ, {}, clear=True):
            assert get_log_level() == logging.INFO

    @pytest.mark.parametrize(
        "name,level",
        [("DEBUG", logging.DEBUG), ("WARNING", logging.WARNING), ("ERROR", logging.ERROR)],
    )
    def test_named_levels(self, name, level):
        with mock.patch.dict(os.environ, {"LOG_LEVEL": name}):
            assert get_log_level() == level

    def test_case_insensitive(self):
        with mock.patch.dict(os.environ, {"LOG_LEVEL": "debug"}):
            assert get_log_level() == logging.DEBUG

    def test_invalid_falls_back_to_info(self):
        with mock.patch.dict(os.environ, {"LOG_LEVEL": "CHATTY"}):
            assert get_log_level() == logging.INFO

    def test_non_level_attribute_rejected(self):
        """Names of non-integer logging attributes are not levels."""
        with mock.patch.dict(os.environ, {"LOG_LEVEL": "getLogger"}):
            assert get_log_level() == logging.INFO


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_sets_root_level(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_env(self):
        with mock.patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_default_format_has_thread_name(self):
        assert "%(threadName)s" in DEFAULT_FORMAT
        setup_logging(level=logging.INFO)
        formatter = logging.getLogger().handlers[0].formatter
        assert formatter._fmt == DEFAULT_FORMAT

    def test_custom_format(self):
        setup_logging(level=logging.INFO, format_string="%(levelname)s:%(message)s")
        assert logging.getLogger().handlers[0].formatter._fmt == "%(levelname)s:%(message)s"

    def test_quiet_loggers_pinned_to_warning(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_quiet_loggers_follow_higher_level(self):
        setup_logging(level=logging.ERROR)
        assert logging.getLogger("httpx").level == logging.ERROR

    def test_existing_loggers_stay_enabled(self):
        module_logger = logging.getLogger("message_viewer.etl.aggregator")
        setup_logging(level=logging.INFO)
        assert module_logger.disabled is False

    def test_log_file(self, tmp_path: Path):
        log_file = tmp_path / "viewer.log"
        setup_logging(level=logging.INFO, log_file=str(log_file))

        logging.getLogger("message_viewer.test").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert any(
            isinstance(h, logging.handlers.RotatingFileHandler) for h in logging.getLogger().handlers
        )
        assert "written to file" in log_file.read_text(encoding="utf-8")

    def test_log_file_from_env(self, tmp_path: Path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("MESSAGE_VIEWER_LOG_FILE", str(log_file))
        setup_logging(level=logging.INFO)
        assert len(logging.getLogger().handlers) == 2

    def test_repeated_calls_do_not_stack_handlers(self):
        setup_logging(level=logging.INFO)
        setup_logging(level=logging.INFO)
        assert len(logging.getLogger().handlers) == 1
