from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from .table_error import ErrorContext, RowOperationError

"""ErrorRecord model for the JSON Lines error log.

One ErrorRecord is written per error delivered to the logging error sink.
``row_id`` is stored as a string; ``None`` means the error is not tied to a
single row (e.g. a bulk commit call that raised).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        operation: create | update | delete | bulk_save
        kind: validation | save | delete | bulk_save
        row_id: Identity key of the affected row, or None
        message: Error message
        field_errors: Field-level messages for validation errors, else None
    """
    timestamp: str  # ISO8601 UTC
    operation: str
    kind: str
    row_id: str | None
    message: str
    field_errors: dict[str, str] | None = None

    @staticmethod
    def create(
        operation: str,
        kind: str,
        row_id: object,
        message: str,
        field_errors: dict[str, str] | None = None,
    ) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            operation=operation,
            kind=kind,
            row_id=None if row_id is None else str(row_id),
            message=message,
            field_errors=field_errors,
        )

    @staticmethod
    def from_error(error: RowOperationError, context: ErrorContext) -> ErrorRecord:
        row_id = error.row_id if error.row_id is not None else context.row_id
        return ErrorRecord.create(
            operation=context.operation,
            kind=error.kind,
            row_id=row_id,
            message=error.message,
            field_errors=error.field_errors,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
