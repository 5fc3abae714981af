from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping

from .row_state import (
    Lifecycle,
    Record,
    RowKey,
    RowState,
    create_row_state,
    update_row_state,
)

"""Versioned copy-on-write collection of RowState.

Every mutation method returns a new RowTable with ``version`` bumped by one;
the receiver is never changed. Insertion order is preserved: source records
first (in source order), then rows added locally.
"""

__all__ = [
    "RowTable",
]


class RowTable(Mapping[RowKey, RowState]):
    """Immutable mapping of identity key -> RowState."""

    __slots__ = ("_rows", "_version")

    def __init__(self, rows: Mapping[RowKey, RowState] | None = None, version: int = 0) -> None:
        self._rows: dict[RowKey, RowState] = dict(rows or {})
        self._version = version

    @property
    def version(self) -> int:
        return self._version

    def __getitem__(self, key: RowKey) -> RowState:
        return self._rows[key]

    def __iter__(self) -> Iterator[RowKey]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:  # pragma: no cover (trivial)
        return f"RowTable(version={self._version}, rows={len(self._rows)})"

    def with_row(self, key: RowKey, state: RowState) -> RowTable:
        rows = dict(self._rows)
        rows[key] = state
        return RowTable(rows, self._version + 1)

    def without(self, *keys: RowKey) -> RowTable:
        rows = {k: v for k, v in self._rows.items() if k not in keys}
        return RowTable(rows, self._version + 1)

    def updated(
        self, updates: Mapping[RowKey, RowState], remove: Iterable[RowKey] = ()
    ) -> RowTable:
        """Apply several writes and removals as one transition."""
        removed = set(remove)
        rows = {k: v for k, v in self._rows.items() if k not in removed}
        rows.update(updates)
        return RowTable(rows, self._version + 1)

    def visible_records(self) -> list[dict]:
        """Working copies of every row that is not soft-removed."""
        return [
            dict(state.current)
            for state in self._rows.values()
            if state.lifecycle is not Lifecycle.DELETED
        ]

    def reconciled(
        self, records: Iterable[Record], identify: Callable[[Record], RowKey]
    ) -> RowTable:
        """Merge a fresh source dataset into the table.

        - unknown key: new idle row
        - known key: ``original`` takes the source value; ``current`` keeps
          the user's work while the row is editing, saving or in error
        - keys the source no longer supplies are dropped, except unsaved
          new rows which the source cannot know about
        """
        rows: dict[RowKey, RowState] = {}
        for record in records:
            key = identify(record)
            existing = self._rows.get(key)
            if existing is None:
                rows[key] = create_row_state(record)
                continue
            keeps_work = existing.lifecycle in (
                Lifecycle.EDITING,
                Lifecycle.SAVING,
                Lifecycle.ERROR,
            )
            rows[key] = update_row_state(
                existing,
                original=record,
                current=existing.current if keeps_work else record,
                is_new=False,
            )
        # 未保存の新規行は残す
        for key, state in self._rows.items():
            if state.is_new and key not in rows:
                rows[key] = state
        return RowTable(rows, self._version + 1)
