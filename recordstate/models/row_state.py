from __future__ import annotations

from collections.abc import Hashable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

"""RowState model for the editable-record state engine.

RowState is the per-record snapshot held by the engine: the last confirmed
snapshot (``original``), the working copy (``current``), the lifecycle state
and any validation / commit errors attached to the row.

Instances are frozen and their mappings are read-only views, so a RowTable
snapshot handed to a reader can never change underneath it.
"""

__all__ = [
    "Record",
    "RowKey",
    "Lifecycle",
    "RowState",
    "RowErrorState",
    "records_equal",
    "create_row_state",
    "update_row_state",
]

Record = Mapping[str, Any]
RowKey = Hashable

_EMPTY: Mapping[str, Any] = MappingProxyType({})


class Lifecycle(Enum):
    """Lifecycle of a tracked record.

    State transitions: idle → editing → saving → (idle | error), plus
    (idle | editing) → deleted on a confirmed soft remove.
    """
    IDLE = "idle"
    EDITING = "editing"
    SAVING = "saving"
    ERROR = "error"
    DELETED = "deleted"


def _freeze(record: Record | None) -> Mapping[str, Any]:
    if record is None:
        return _EMPTY
    if isinstance(record, MappingProxyType):
        return record
    return MappingProxyType(dict(record))


def records_equal(a: Record | None, b: Record | None) -> bool:
    """Field-wise equivalence used for dirty detection.

    Both mappings must carry the same keys. Values compare with ``==``;
    nested mappings are compared recursively.
    """
    if a is b:
        return True
    if a is None or b is None:
        return False
    if set(a.keys()) != set(b.keys()):
        return False
    for key, value in a.items():
        other = b[key]
        if isinstance(value, Mapping) and isinstance(other, Mapping):
            if not records_equal(value, other):
                return False
        elif value != other:
            return False
    return True


@dataclass(frozen=True)
class RowState:
    """Snapshot + lifecycle for one tracked record."""
    original: Mapping[str, Any]  # 確定済みスナップショット (新規行は空)
    current: Mapping[str, Any]  # 編集中の作業コピー
    lifecycle: Lifecycle = Lifecycle.IDLE
    field_errors: Mapping[str, str] | None = None  # only while invalid
    row_error: str | None = None  # last commit failure message
    is_new: bool = False
    is_dirty: bool = False

    # mapping fields are not hashable
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        object.__setattr__(self, "original", _freeze(self.original))
        object.__setattr__(self, "current", _freeze(self.current))
        if self.field_errors is not None:
            object.__setattr__(self, "field_errors", _freeze(self.field_errors))

    @property
    def has_errors(self) -> bool:
        return bool(self.field_errors) or self.row_error is not None


@dataclass(frozen=True)
class RowErrorState:
    """Read-only view of the error-related parts of a RowState."""
    lifecycle: Lifecycle
    field_errors: Mapping[str, str] | None
    row_error: str | None


def create_row_state(record: Record | None, is_new: bool = False) -> RowState:
    """Build the initial RowState for a record.

    New records start with an empty ``original`` so equivalence checks
    never hit a missing snapshot.
    """
    current = _freeze(record)
    return RowState(
        original=_EMPTY if is_new else current,
        current=current,
        lifecycle=Lifecycle.IDLE,
        is_new=is_new,
        is_dirty=False,
    )


def update_row_state(state: RowState, **changes: Any) -> RowState:
    """Return a copy of ``state`` with ``changes`` applied.

    ``is_dirty`` is recomputed whenever ``current`` or ``original`` is part
    of the update; an explicit ``is_dirty`` in ``changes`` is ignored then.
    """
    if "current" in changes or "original" in changes:
        current = changes.get("current", state.current)
        original = changes.get("original", state.original)
        changes["is_dirty"] = not records_equal(current, original)
    return replace(state, **changes)
