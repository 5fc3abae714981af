from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord
from ..models.table_error import ErrorContext, RowOperationError

"""Error log buffering and the default error sink.

- JSON Lines with a fixed key set (see ErrorRecord)
- one ``errors-YYYYMMDD-HHMMSS.log`` (UTC) per buffer, created on first flush
- LoggingErrorSink logs every engine error at ERROR level and, when given a
  buffer, keeps an ErrorRecord for it
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "LoggingErrorSink",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

logger = logging.getLogger(__name__)


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    - file path is fixed on first access
    - not thread safe (the engine is single writer)
    """
    def __init__(self, log_dir: Path | str | None = None) -> None:
        self._log_dir = Path(log_dir) if log_dir is not None else LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._log_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file.

        Returns:
            The file written to, or None when nothing was buffered
        """
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp


class LoggingErrorSink:
    """Default ``on_error`` collaborator: log and optionally buffer."""

    def __init__(self, buffer: ErrorLogBuffer | None = None) -> None:
        self.buffer = buffer

    def __call__(self, error: RowOperationError, context: ErrorContext) -> None:
        row_id = error.row_id if error.row_id is not None else context.row_id
        if error.field_errors:
            logger.error(
                "%s failed op=%s row=%s: %s %s",
                error.kind, context.operation, row_id, error.message, error.field_errors,
            )
        else:
            logger.error(
                "%s failed op=%s row=%s: %s", error.kind, context.operation, row_id, error.message
            )
        if self.buffer is not None:
            self.buffer.append(ErrorRecord.from_error(error, context))
