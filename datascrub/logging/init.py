from __future__ import annotations

import logging
import sys

from ..models.log_entry import LogEntry, LogSeverity

"""Logging initialization with labeled prefixes.

Console output uses INFO|WARN|ERROR|SUMMARY prefixes. Pipeline log entries
(LogEntry) reach the same logger through ``logger_log_sink``.
"""

__all__ = [
    "setup_logging",
    "get_logger",
    "log_summary",
    "logger_log_sink",
    "reset_logging",
]

LOGGER_NAME = "datascrub"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None

_SEVERITY_LEVELS = {
    LogSeverity.PLAIN: logging.INFO,
    LogSeverity.SUCCESS: logging.INFO,
    LogSeverity.WARN: logging.WARNING,
    LogSeverity.ERROR: logging.ERROR,
}


class LabeledFormatter(logging.Formatter):
    """Formatter that prefixes each message with its level label."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def setup_logging() -> logging.Logger:
    """Configure the application logger (idempotent).

    Output goes to stdout; propagation to the root logger is disabled to
    avoid duplicate lines.
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def logger_log_sink(entry: LogEntry) -> None:
    """Log sink forwarding pipeline entries to the application logger."""
    get_logger().log(_SEVERITY_LEVELS[entry.severity], entry.render())


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    _logger = None
