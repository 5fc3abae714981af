"""Editable-record state engine.

Tracks pending edits to a working set of records, validates them in three
layers before commit, and reconciles local changes with the outcome of
single and batched commits.
"""

from .config.loader import ConfigError, EngineConfig, load_config
from .models import (
    BulkSaveResult,
    ErrorContext,
    FailedRow,
    Lifecycle,
    PendingCounts,
    RowOperationError,
    RowState,
    RowTable,
    TableChanges,
)
from .services import (
    EditableRecordEngine,
    EngineError,
    InvalidTransitionError,
    JsonSchemaValidator,
    MissingCollaboratorError,
    RowLockedError,
    UnknownRowError,
)

__all__ = [
    "BulkSaveResult",
    "ConfigError",
    "EditableRecordEngine",
    "EngineConfig",
    "EngineError",
    "ErrorContext",
    "FailedRow",
    "InvalidTransitionError",
    "JsonSchemaValidator",
    "Lifecycle",
    "MissingCollaboratorError",
    "PendingCounts",
    "RowLockedError",
    "RowOperationError",
    "RowState",
    "RowTable",
    "TableChanges",
    "UnknownRowError",
    "load_config",
]
