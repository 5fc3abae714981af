from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..config.loader import EngineConfig, load_config
from ..logging.error_log import ErrorLogBuffer, LoggingErrorSink
from ..logging.init import setup_logging
from ..models.changes import BulkSaveResult, PendingCounts, TableChanges
from ..models.row_state import Record, RowErrorState, RowKey, RowState
from ..models.row_table import RowTable
from .change_tracker import count_pending_changes, has_pending_changes, track_changes
from .commit import Collaborators, CommitCoordinator, ErrorSink, UnknownRowError
from .identity import IdentifyFn, RowIdentity
from .summary import render_pending_line
from .validation import AsyncRowValidator, CellValidatorRegistry, SchemaValidator, ValidationOrchestrator

"""EditableRecordEngine: the public entry point.

Wires identity, validation, change tracking and the commit coordinator
together, and exposes per-record operations plus read-only derived views.

Usage:
    engine = EditableRecordEngine(
        records,
        save=api.save,
        bulk_save=api.bulk_save,
        cell_validators={"price": check_price},
    )
    engine.start_edit("r1")
    engine.change_field("r1", "price", 20)
    await engine.save("r1")

Each engine instance is independent; nothing is shared between instances.
"""

__all__ = [
    "EditableRecordEngine",
]

logger = logging.getLogger(__name__)


class EditableRecordEngine:
    """Tracks, validates and commits edits to a working set of records."""

    def __init__(
        self,
        records: Iterable[Record] | None = None,
        *,
        identify: IdentifyFn | None = None,
        schema_validate: SchemaValidator | None = None,
        cell_validators: CellValidatorRegistry | None = None,
        async_validate: AsyncRowValidator | None = None,
        save: Any = None,
        bulk_save: Any = None,
        delete: Any = None,
        soft_remove: Any = None,
        on_error: ErrorSink | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._identity = RowIdentity(
            custom_fn=identify,
            identity_field=self._config.identity_field,
            placeholder_prefix=self._config.placeholder_prefix,
        )
        self._validator = ValidationOrchestrator(
            schema_validate=schema_validate,
            cell_validators=cell_validators,
            async_validate=async_validate,
        )
        self._error_buffer: ErrorLogBuffer | None = None
        if on_error is None:
            if self._config.error_log_dir is not None:
                self._error_buffer = ErrorLogBuffer(self._config.error_log_dir)
            on_error = LoggingErrorSink(self._error_buffer)
        self._coordinator = CommitCoordinator(
            identity=self._identity,
            validator=self._validator,
            collaborators=Collaborators(
                save=save, bulk_save=bulk_save, delete=delete, soft_remove=soft_remove
            ),
            on_error=on_error,
            lock_saving_rows=self._config.lock_saving_rows,
            persist_delete_errors=self._config.persist_delete_errors,
        )
        if records is not None:
            self.load(records)

    @classmethod
    def from_config(
        cls,
        path: Path | None = None,
        env_file: Path | None = None,
        records: Iterable[Record] | None = None,
        **collaborators: Any,
    ) -> EditableRecordEngine:
        """Build an engine from a YAML config file and configure logging."""
        config = load_config(path, env_file=env_file)
        setup_logging(config.log_level)
        return cls(records, config=config, **collaborators)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def error_log(self) -> ErrorLogBuffer | None:
        """Buffer of the default error sink, when error_log_dir is configured."""
        return self._error_buffer

    # ---- source data ----------------------------------------------------

    def load(self, records: Iterable[Record]) -> None:
        """Reconcile the tracked rows with a fresh source dataset."""
        table = self._coordinator.table.reconciled(records, self._identity.identify)
        self._coordinator.replace_table(table)
        logger.debug("loaded %d rows (version=%d)", len(table), table.version)

    # ---- operations -----------------------------------------------------

    def start_edit(self, row_id: RowKey) -> RowState:
        return self._coordinator.start_edit(row_id)

    def change_field(self, row_id: RowKey, field: str, value: Any) -> RowState:
        return self._coordinator.change_field(row_id, field, value)

    def cancel(self, row_id: RowKey) -> RowState:
        return self._coordinator.cancel(row_id)

    def add_new(self) -> RowKey:
        return self._coordinator.add_new()

    async def validate_cell(self, row_id: RowKey, field: str) -> str | None:
        return await self._coordinator.validate_cell(row_id, field)

    async def save(self, row_id: RowKey) -> RowState | None:
        return await self._coordinator.save(row_id)

    async def delete(self, row_id: RowKey) -> bool:
        return await self._coordinator.delete(row_id)

    async def soft_remove(self, row_id: RowKey) -> bool:
        return await self._coordinator.soft_remove(row_id)

    async def bulk_save(self) -> BulkSaveResult | None:
        return await self._coordinator.bulk_save()

    # ---- views ----------------------------------------------------------

    @property
    def snapshot(self) -> RowTable:
        """The current immutable row table."""
        return self._coordinator.table

    @property
    def version(self) -> int:
        return self._coordinator.table.version

    @property
    def editing_id(self) -> RowKey | None:
        return self._coordinator.editing_id

    def row(self, row_id: RowKey) -> RowState:
        try:
            return self._coordinator.table[row_id]
        except KeyError:
            raise UnknownRowError(row_id) from None

    def visible_rows(self) -> list[dict[str, Any]]:
        return self._coordinator.table.visible_records()

    def pending_changes(self) -> TableChanges:
        return track_changes(self._coordinator.table)

    def has_pending_changes(self) -> bool:
        return has_pending_changes(self._coordinator.table)

    def pending_counts(self) -> PendingCounts:
        return count_pending_changes(self._coordinator.table)

    def pending_summary(self) -> str:
        return render_pending_line(self.pending_counts())

    def row_error_state(self, row_id: RowKey) -> RowErrorState:
        state = self.row(row_id)
        return RowErrorState(
            lifecycle=state.lifecycle,
            field_errors=state.field_errors,
            row_error=state.row_error,
        )
