"""Unit tests for logging configuration

Tests verify that structlog is configured with:
- JSON output to <log_dir>/daemon.log (or a custom filename)
- Automatic log directory creation
- Exception stack traces when exc_info=True
- Console level taken from the argument or LOG_LEVEL
"""

import json
import logging
import os

import pytest
import structlog

from reddit_intel.backend.utils.logging_config import get_logger, setup_logging


@pytest.fixture
def log_dir(tmp_path):
    return os.path.join(str(tmp_path), "logs")


@pytest.fixture
def clean_logging():
    """Reset logging configuration after each test."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def _entries(path, event):
    with open(path, "r") as f:
        return [json.loads(line) for line in f if event in line]


class TestSetupLogging:

    def test_creates_log_directory(self, log_dir, clean_logging):
        assert not os.path.exists(log_dir)

        setup_logging(log_dir=log_dir)

        assert os.path.isdir(log_dir)

    def test_default_filename(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir)

        get_logger("test.default").info("default_file_event")

        assert os.path.isfile(os.path.join(log_dir, "daemon.log"))

    def test_custom_filename(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir, log_filename="web.log")

        get_logger("test.custom").info("custom_file_event")

        assert _entries(os.path.join(log_dir, "web.log"), "custom_file_event")

    def test_console_level_argument(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir, level="warning")

        console = [h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)]
        assert console[0].level == logging.WARNING

    def test_console_level_from_environment(self, log_dir, clean_logging, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        setup_logging(log_dir=log_dir)

        console = [h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)]
        assert console[0].level == logging.ERROR

    def test_repeated_setup_does_not_duplicate_handlers(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir)
        setup_logging(log_dir=log_dir)

        assert len(logging.getLogger().handlers) == 2


class TestJSONFormat:

    def test_entry_fields(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir)

        get_logger("reddit_intel.fetcher").info("page_fetched", channel="r/python", posts=25)

        entry = _entries(os.path.join(log_dir, "daemon.log"), "page_fetched")[0]
        assert entry["event"] == "page_fetched"
        assert entry["level"] == "info"
        assert entry["logger"] == "reddit_intel.fetcher"
        assert entry["channel"] == "r/python"
        assert entry["posts"] == 25
        assert "T" in entry["timestamp"]

    def test_debug_reaches_file(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir, level="INFO")

        get_logger("test.debug").debug("debug_only_event", key="value")

        assert _entries(os.path.join(log_dir, "daemon.log"), "debug_only_event")

    def test_foreign_stdlib_records_are_json(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir)

        logging.getLogger("third.party").warning("plain stdlib message")

        entry = _entries(os.path.join(log_dir, "daemon.log"), "plain stdlib message")[0]
        assert entry["level"] == "warning"
        assert entry["logger"] == "third.party"


class TestExceptionLogging:

    def test_exc_info_includes_traceback(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir)
        logger = get_logger("test.exception")

        try:
            raise ValueError("store rejected document")
        except ValueError:
            logger.error("ingest_failed", exc_info=True, document_id="p1")

        entry = _entries(os.path.join(log_dir, "daemon.log"), "ingest_failed")[0]
        assert "Traceback" in entry["exception"]
        assert "store rejected document" in entry["exception"]

    def test_no_exc_info_no_exception_field(self, log_dir, clean_logging):
        setup_logging(log_dir=log_dir)

        get_logger("test.plain").error("plain_error", reason="bad")

        entry = _entries(os.path.join(log_dir, "daemon.log"), "plain_error")[0]
        assert "exception" not in entry
