from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from .changes import TableChanges
from .row_state import Record, RowKey

"""Error types delivered to the engine's error sink.

Taxonomy:
- validation: pre-commit, local; the row holds field-level messages
- save: single record commit failure
- delete: hard delete / soft remove failure
- bulk_save: batch commit failure (whole call or single item)

Every error is delivered together with an ErrorContext naming the operation
(create|update|delete|bulk_save) and the affected record / identity.
"""

__all__ = [
    "ErrorKind",
    "Operation",
    "RowOperationError",
    "ErrorContext",
]

ErrorKind = Literal["validation", "save", "delete", "bulk_save"]
Operation = Literal["create", "update", "delete", "bulk_save"]


class RowOperationError(Exception):
    """A failed engine operation, as seen by the error sink."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        row_id: RowKey | None = None,
        cause: BaseException | None = None,
        field_errors: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.row_id = row_id
        self.cause = cause
        self.field_errors = dict(field_errors) if field_errors else None

    def __repr__(self) -> str:
        return f"RowOperationError(kind={self.kind!r}, message={self.message!r}, row_id={self.row_id!r})"


@dataclass(frozen=True)
class ErrorContext:
    operation: Operation
    row_id: RowKey | None = None
    row: Record | None = None  # record involved (submitted copy)
    changes: TableChanges | None = None  # bulk_save のみ: 送信した変更セット
