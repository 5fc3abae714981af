from __future__ import annotations

from collections.abc import Mapping

from ..models.changes import DeletedRow, ModifiedRow, PendingCounts, TableChanges
from ..models.row_state import Lifecycle, RowKey, RowState, records_equal

"""Derive pending creations, updates and deletions from the row table.

Per row, first match wins:
- lifecycle deleted -> deleted (carries the last known original)
- is_new            -> new (carries the working copy)
- dirty and still unequal to original on a fresh comparison -> modified
Everything else is clean and omitted.

The fresh comparison guards against a stale ``is_dirty`` flag.
"""

__all__ = [
    "track_changes",
    "new_row_keys",
    "has_pending_changes",
    "count_pending_changes",
]


def _is_modified(state: RowState) -> bool:
    return state.is_dirty and not records_equal(state.original, state.current)


def track_changes(rows: Mapping[RowKey, RowState]) -> TableChanges:
    changes = TableChanges()
    for key, state in rows.items():
        if state.lifecycle is Lifecycle.DELETED:
            changes.deleted.append(DeletedRow(id=key, data=dict(state.original)))
        elif state.is_new:
            changes.new.append(dict(state.current))
        elif _is_modified(state):
            changes.modified.append(
                ModifiedRow(original=dict(state.original), updated=dict(state.current))
            )
    return changes


def new_row_keys(rows: Mapping[RowKey, RowState]) -> list[RowKey]:
    """Keys of the rows track_changes() puts into ``new``, in the same order."""
    return [
        key
        for key, state in rows.items()
        if state.lifecycle is not Lifecycle.DELETED and state.is_new
    ]


def has_pending_changes(rows: Mapping[RowKey, RowState]) -> bool:
    return any(
        state.lifecycle is Lifecycle.DELETED or state.is_new or _is_modified(state)
        for state in rows.values()
    )


def count_pending_changes(rows: Mapping[RowKey, RowState]) -> PendingCounts:
    changes = track_changes(rows)
    return PendingCounts(
        new=len(changes.new),
        modified=len(changes.modified),
        deleted=len(changes.deleted),
    )
