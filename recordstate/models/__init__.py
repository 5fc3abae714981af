"""Domain models for the editable-record state engine.

This package contains the row snapshot, row collection, change-set and
error models used throughout the engine.
"""

from .changes import BulkSaveResult, DeletedRow, FailedRow, ModifiedRow, PendingCounts, TableChanges
from .error_record import ErrorRecord
from .row_state import (
    Lifecycle,
    Record,
    RowErrorState,
    RowKey,
    RowState,
    create_row_state,
    records_equal,
    update_row_state,
)
from .row_table import RowTable
from .table_error import ErrorContext, RowOperationError

__all__ = [
    # Row models
    "Lifecycle",
    "Record",
    "RowErrorState",
    "RowKey",
    "RowState",
    "RowTable",
    "create_row_state",
    "records_equal",
    "update_row_state",
    # Change-set models
    "BulkSaveResult",
    "DeletedRow",
    "FailedRow",
    "ModifiedRow",
    "PendingCounts",
    "TableChanges",
    # Error models
    "ErrorContext",
    "ErrorRecord",
    "RowOperationError",
]
