from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .row_state import Record, RowKey

"""Change-set models exchanged with the bulk commit collaborator.

TableChanges is what the engine submits; BulkSaveResult is what the
collaborator answers with (per-record success / failure).
"""

__all__ = [
    "ModifiedRow",
    "DeletedRow",
    "TableChanges",
    "FailedRow",
    "BulkSaveResult",
    "PendingCounts",
]


@dataclass(frozen=True)
class ModifiedRow:
    original: Record  # 確定済みの値
    updated: Record  # 送信する作業コピー


@dataclass(frozen=True)
class DeletedRow:
    id: RowKey
    data: Record  # last known original


@dataclass
class TableChanges:
    """Pending creations, updates and deletions derived from the row table."""
    new: list[dict[str, Any]] = field(default_factory=list)
    modified: list[ModifiedRow] = field(default_factory=list)
    deleted: list[DeletedRow] = field(default_factory=list)

    @property
    def has_commit_work(self) -> bool:
        """True when there is anything for a bulk commit to send.

        Pending deletions alone do not count: soft removes are committed
        one by one as they happen.
        """
        return bool(self.new) or bool(self.modified)

    def __bool__(self) -> bool:
        return bool(self.new) or bool(self.modified) or bool(self.deleted)


@dataclass(frozen=True)
class FailedRow:
    row: Record  # the record as submitted
    error: str


@dataclass(frozen=True)
class BulkSaveResult:
    success: list[Record] = field(default_factory=list)
    failed: list[FailedRow] = field(default_factory=list)

    @classmethod
    def coerce(cls, value: Any) -> BulkSaveResult:
        """Accept either a BulkSaveResult or a plain ``{"success", "failed"}`` mapping.

        Failed items may be FailedRow instances or ``{"row", "error"}`` mappings.

        Raises:
            TypeError: If ``value`` has neither shape.
        """
        if isinstance(value, BulkSaveResult):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(
                f"bulk_save must return BulkSaveResult or mapping, got {type(value).__name__}"
            )
        failed: list[FailedRow] = []
        for item in value.get("failed") or []:
            if isinstance(item, FailedRow):
                failed.append(item)
            elif isinstance(item, Mapping):
                failed.append(FailedRow(row=item["row"], error=str(item.get("error", ""))))
            else:
                raise TypeError(f"unsupported failed item: {type(item).__name__}")
        return cls(success=list(value.get("success") or []), failed=failed)


@dataclass(frozen=True)
class PendingCounts:
    new: int
    modified: int
    deleted: int

    @property
    def total(self) -> int:
        return self.new + self.modified + self.deleted
