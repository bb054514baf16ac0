"""
Process-wide logging for the ftp-linkfs command line.

setup_logging() replaces the root logger's handlers with the ones LogConfig
asks for: an appending log file, stderr, or both. Blocking callers and the
event loop log from different threads, so every line carries the thread
name. aioftp writes one INFO record per command and reply; it is held at
WARNING unless the whole process runs at DEBUG.
"""

import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"

# Third-party loggers that only follow the configured level at DEBUG
CHATTY_LOGGERS = ("aioftp",)


def _open_log_file(filename: str) -> logging.Handler:
    log_path = Path(filename)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_path, mode="a", encoding="utf-8")


def _handlers_for(config: LogConfig) -> list[logging.Handler]:
    handlers = []
    if config.file:
        handlers.append(_open_log_file(config.file))
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))
    return handlers


def setup_logging(config: LogConfig) -> None:
    """
    Install the handlers and levels described by config on the root logger.

    Unknown level names fall back to INFO. Calling this again drops the
    handlers a previous call installed.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    for handler in _handlers_for(config):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    chatty_level = level if level <= logging.DEBUG else logging.WARNING
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)
