from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Engine modules log through ``logging.getLogger(__name__)``; every such
logger is a child of the ``recordstate`` logger configured here, so
setup_logging() controls the output of the whole package.

Labels: INFO|WARN|ERROR|SUMMARY (SUMMARY is a custom level between INFO
and WARNING used for pending-change and bulk commit summaries).
"""

__all__ = [
    "SUMMARY_LEVEL",
    "LOGGER_NAME",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
]

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25
LOGGER_NAME = "recordstate"

logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter that prefixes each message with a short level label."""

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


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Configure the package logger with labeled prefixes.

    Idempotent: a second call returns the already configured logger and
    only adjusts its level.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level

    Returns:
        Configured ``recordstate`` logger
    """
    global _logger

    numeric = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level}")

    if _logger is not None:
        _logger.setLevel(numeric)
        return _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric)

    # Clear any existing handlers to avoid duplication
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the configured package logger, configuring it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
        _logger.propagate = True
    _logger = None
