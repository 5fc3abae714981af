"""Logging setup and error log for the engine."""

from .error_log import ErrorLogBuffer, LoggingErrorSink
from .init import SUMMARY_LEVEL, get_logger, log_summary, reset_logging, setup_logging

__all__ = [
    "ErrorLogBuffer",
    "LoggingErrorSink",
    "SUMMARY_LEVEL",
    "get_logger",
    "log_summary",
    "reset_logging",
    "setup_logging",
]
