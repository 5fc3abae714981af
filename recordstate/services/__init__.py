"""Engine services: identity, validation, change tracking and commits."""

from .change_tracker import count_pending_changes, has_pending_changes, track_changes
from .commit import (
    Collaborators,
    CommitCoordinator,
    EngineError,
    InvalidTransitionError,
    MissingCollaboratorError,
    RowLockedError,
    UnknownRowError,
)
from .engine import EditableRecordEngine
from .identity import RowIdentity, identify
from .schema_validation import JsonSchemaValidator
from .validation import ValidationOrchestrator, merge_layers

__all__ = [
    "Collaborators",
    "CommitCoordinator",
    "EditableRecordEngine",
    "EngineError",
    "InvalidTransitionError",
    "JsonSchemaValidator",
    "MissingCollaboratorError",
    "RowIdentity",
    "RowLockedError",
    "UnknownRowError",
    "ValidationOrchestrator",
    "count_pending_changes",
    "has_pending_changes",
    "identify",
    "merge_layers",
    "track_changes",
]
