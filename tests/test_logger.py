"""
Unit tests for ftp_linkfs.logger module.

Tests cover:
- FileHandler creation when file is specified
- StreamHandler creation when console=True
- Log level setting, including the aioftp logger
- Log format (timestamp, level, thread name)
"""

import logging
import sys
from pathlib import Path

import pytest

from ftp_linkfs.config import LogConfig
from ftp_linkfs.logger import LOG_FORMAT, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Put the root logger back the way the test runner configured it."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    aioftp_level = logging.getLogger("aioftp").level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    logging.getLogger("aioftp").setLevel(aioftp_level)


def _stream_handlers():
    return [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


def _file_handlers():
    return [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]


class TestSetupLoggingHandlers:
    """Tests for handler creation."""

    def test_file_handler_created_when_file_specified(self, tmp_path: Path):
        log_file = tmp_path / "test.log"

        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        file_handlers = _file_handlers()
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == log_file
        assert _stream_handlers() == []

    def test_no_file_handler_without_file(self):
        setup_logging(LogConfig(level="INFO", file=None, console=True))

        assert _file_handlers() == []
        assert len(_stream_handlers()) == 1

    def test_file_handler_creates_parent_directories(self, tmp_path: Path):
        nested_log_file = tmp_path / "subdir" / "nested" / "test.log"

        setup_logging(LogConfig(level="INFO", file=str(nested_log_file), console=False))

        assert nested_log_file.parent.exists()

    def test_console_handler_uses_stderr(self):
        setup_logging(LogConfig(level="INFO", console=True))

        assert _stream_handlers()[0].stream is sys.stderr

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(LogConfig(level="INFO", console=True))
        setup_logging(LogConfig(level="INFO", console=True))

        assert len(logging.getLogger().handlers) == 1


class TestSetupLoggingLevels:
    """Tests for log levels."""

    @pytest.mark.parametrize(
        "level_name,expected",
        [
            ("DEBUG", logging.DEBUG),
            ("info", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("bogus", logging.INFO),
        ],
    )
    def test_root_level(self, level_name, expected):
        setup_logging(LogConfig(level=level_name, console=True))

        assert logging.getLogger().level == expected

    def test_aioftp_quiet_unless_debug(self):
        setup_logging(LogConfig(level="INFO", console=True))

        assert logging.getLogger("aioftp").level == logging.WARNING

    def test_aioftp_follows_debug(self):
        setup_logging(LogConfig(level="DEBUG", console=True))

        assert logging.getLogger("aioftp").level == logging.DEBUG


class TestLogFormat:
    """Tests for the log line format."""

    def test_format_contains_thread_name(self):
        assert "%(threadName)s" in LOG_FORMAT
        assert "%(levelname)s" in LOG_FORMAT
        assert "%(asctime)s" in LOG_FORMAT

    def test_file_output_is_formatted(self, tmp_path: Path):
        log_file = tmp_path / "format.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        logging.getLogger("ftp_linkfs.test").info("formatted message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert " - INFO - MainThread - formatted message" in content

    def test_file_output_is_appended(self, tmp_path: Path):
        log_file = tmp_path / "append.log"
        log_file.write_text("earlier run\n", encoding="utf-8")

        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))
        logging.getLogger("ftp_linkfs.test").warning("later run")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "earlier run"
        assert lines[-1].endswith("later run")
