from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from ..logging.init import SUMMARY_LEVEL
from ..models.changes import BulkSaveResult, TableChanges
from ..models.row_state import (
    Lifecycle,
    RowKey,
    RowState,
    create_row_state,
    update_row_state,
)
from ..models.row_table import RowTable
from ..models.table_error import ErrorContext, RowOperationError
from .awaitables import resolve
from .change_tracker import new_row_keys, track_changes
from .identity import RowIdentity
from .summary import render_bulk_result_line
from .validation import ValidationOrchestrator

"""Per-record commit state machine and batched commit.

    idle/error --start_edit--> editing
    editing --change_field--> editing            (is_dirty recomputed)
    editing --cancel--> idle                     (current := original)
    editing --save, invalid--> error             (field_errors stored)
    editing --save, valid--> saving --ok--> idle | --raises--> error
    idle/editing --delete--> (removed)           (failure: row_error only)
    idle/editing --soft_remove--> deleted        (failure: row_error only)
    any --add_new--> editing, is_new

Every transition replaces the RowTable as a whole. Async steps re-read the
latest row after each await before writing to it. Failures never retry:
state is left as before the action (plus error flags) and the error sink
is notified.
"""

__all__ = [
    "EngineError",
    "UnknownRowError",
    "InvalidTransitionError",
    "RowLockedError",
    "MissingCollaboratorError",
    "ErrorSink",
    "Collaborators",
    "CommitCoordinator",
]

logger = logging.getLogger(__name__)

ErrorSink = Callable[[RowOperationError, ErrorContext], "None | Awaitable[None]"]


class EngineError(Exception):
    """Base class for errors raised to the caller of an engine operation."""


class UnknownRowError(EngineError, KeyError):
    """No row is tracked under the given key."""

    def __str__(self) -> str:
        return f"unknown row: {self.args[0]!r}"


class InvalidTransitionError(EngineError):
    """The row's lifecycle does not allow the requested action."""


class RowLockedError(InvalidTransitionError):
    """The row is saving; no other operation is accepted until the save resolves."""


class MissingCollaboratorError(EngineError):
    """The operation needs a collaborator that was not supplied."""


@dataclass(frozen=True)
class Collaborators:
    """Persistence collaborators; each may be sync or async."""
    save: Callable[[dict[str, Any], dict[str, Any] | None], Any] | None = None
    bulk_save: Callable[[TableChanges], Any] | None = None
    delete: Callable[[RowKey], Any] | None = None
    soft_remove: Callable[[RowKey], Any] | None = None


def _message(exc: BaseException, default: str) -> str:
    return str(exc) or default


class CommitCoordinator:
    """Owns the RowTable and applies every lifecycle transition to it."""

    def __init__(
        self,
        identity: RowIdentity,
        validator: ValidationOrchestrator,
        collaborators: Collaborators,
        on_error: ErrorSink,
        lock_saving_rows: bool = True,
        persist_delete_errors: bool = True,
    ) -> None:
        self._identity = identity
        self._validator = validator
        self._collaborators = collaborators
        self._on_error = on_error
        self._lock_saving_rows = lock_saving_rows
        self._persist_delete_errors = persist_delete_errors
        self._table = RowTable()
        self._editing_id: RowKey | None = None

    # ---- table access -------------------------------------------------

    @property
    def table(self) -> RowTable:
        return self._table

    @property
    def editing_id(self) -> RowKey | None:
        return self._editing_id

    def replace_table(self, table: RowTable) -> None:
        self._table = table
        if self._editing_id is not None and self._editing_id not in table:
            self._editing_id = None

    def _row(self, key: RowKey) -> RowState:
        try:
            return self._table[key]
        except KeyError:
            raise UnknownRowError(key) from None

    def _put(self, key: RowKey, state: RowState) -> None:
        self._table = self._table.with_row(key, state)

    def _check_unlocked(self, key: RowKey, state: RowState, action: str) -> None:
        if self._lock_saving_rows and state.lifecycle is Lifecycle.SAVING:
            raise RowLockedError(f"cannot {action} row {key!r} while it is saving")

    def _check_not_deleted(self, key: RowKey, state: RowState, action: str) -> None:
        if state.lifecycle is Lifecycle.DELETED:
            raise InvalidTransitionError(f"cannot {action} row {key!r}: row is removed")

    async def _notify(self, error: RowOperationError, context: ErrorContext) -> None:
        await resolve(self._on_error(error, context))

    # ---- local edits --------------------------------------------------

    def start_edit(self, key: RowKey) -> RowState:
        state = self._row(key)
        self._check_unlocked(key, state, "edit")
        self._check_not_deleted(key, state, "edit")
        state = replace(state, lifecycle=Lifecycle.EDITING)
        self._put(key, state)
        self._editing_id = key
        return state

    def change_field(self, key: RowKey, field: str, value: Any) -> RowState:
        state = self._row(key)
        self._check_unlocked(key, state, "change")
        self._check_not_deleted(key, state, "change")
        current = dict(state.current)
        current[field] = value
        state = update_row_state(state, current=current)
        self._put(key, state)
        return state

    def cancel(self, key: RowKey) -> RowState:
        state = self._row(key)
        self._check_unlocked(key, state, "cancel")
        self._check_not_deleted(key, state, "cancel")
        state = update_row_state(
            state,
            lifecycle=Lifecycle.IDLE,
            current=state.original,
            field_errors=None,
            row_error=None,
        )
        self._put(key, state)
        if self._editing_id == key:
            self._editing_id = None
        return state

    def add_new(self) -> RowKey:
        key = self._identity.placeholder()
        state = replace(create_row_state({}, is_new=True), lifecycle=Lifecycle.EDITING)
        self._put(key, state)
        self._editing_id = key
        logger.debug("added new row %s", key)
        return key

    async def validate_cell(self, key: RowKey, field: str) -> str | None:
        """Run one cell validator and store or clear that field's message."""
        state = self._row(key)
        if not self._validator.has_cell_validator(field):
            return None
        message = await self._validator.validate_cell(field, state.current)
        latest = self._table.get(key)
        if latest is None:
            return message
        errors = dict(latest.field_errors or {})
        if message:
            errors[field] = message
        else:
            errors.pop(field, None)
        self._put(key, replace(latest, field_errors=errors or None))
        return message

    # ---- single record commit ----------------------------------------

    async def save(self, key: RowKey) -> RowState | None:
        """Validate and commit one row.

        Returns:
            The saved idle RowState, or None when validation or the save
            collaborator failed (the error sink has been notified)
        """
        if self._collaborators.save is None:
            raise MissingCollaboratorError("save collaborator not configured")
        state = self._row(key)
        self._check_unlocked(key, state, "save")
        self._check_not_deleted(key, state, "save")

        operation = "create" if state.is_new else "update"
        submitted = dict(state.current)
        original = None if state.is_new else dict(state.original)

        errors = await self._validator.validate(submitted, state.is_new)
        if errors:
            latest = self._table.get(key)
            if latest is not None and latest.lifecycle is Lifecycle.SAVING:
                # 他の save が進行中: 行には書き込まない
                logger.warning("row %s is saving; validation errors reported only", key)
            elif latest is not None:
                self._put(key, replace(latest, lifecycle=Lifecycle.ERROR, field_errors=errors))
            await self._notify(
                RowOperationError("validation", "Validation failed", row_id=key, field_errors=errors),
                ErrorContext(operation=operation, row_id=key, row=submitted),
            )
            return None

        latest = self._table.get(key)
        if latest is None:
            logger.warning("row %s disappeared during validation; save skipped", key)
            return None
        # 検証中に別の save が始まった場合
        self._check_unlocked(key, latest, "save")
        self._put(key, replace(latest, lifecycle=Lifecycle.SAVING, field_errors=None))

        try:
            result = await resolve(self._collaborators.save(submitted, original))
        except Exception as e:
            message = _message(e, "Failed to save row")
            latest = self._table.get(key)
            if latest is not None:
                self._put(key, replace(latest, lifecycle=Lifecycle.ERROR, row_error=message))
            await self._notify(
                RowOperationError("save", message, row_id=key, cause=e),
                ErrorContext(operation=operation, row_id=key, row=submitted),
            )
            return None

        saved = create_row_state(result)
        if self._editing_id == key:
            self._editing_id = None
        if self._table.get(key) is None:
            logger.warning("row %s left the table during save; result not stored", key)
            return saved
        self._put(key, saved)
        logger.info("saved row %s (%s)", key, operation)
        return saved

    async def delete(self, key: RowKey) -> bool:
        """Hard delete; the row leaves the table on success."""
        if self._collaborators.delete is None:
            raise MissingCollaboratorError("delete collaborator not configured")
        state = self._row(key)
        self._check_unlocked(key, state, "delete")
        try:
            await resolve(self._collaborators.delete(key))
        except Exception as e:
            await self._delete_failed(key, e, "Failed to delete row")
            return False
        self._table = self._table.without(key)
        if self._editing_id == key:
            self._editing_id = None
        logger.info("deleted row %s", key)
        return True

    async def soft_remove(self, key: RowKey) -> bool:
        """Soft remove; the row stays tracked in the deleted lifecycle."""
        if self._collaborators.soft_remove is None:
            raise MissingCollaboratorError("soft_remove collaborator not configured")
        state = self._row(key)
        self._check_unlocked(key, state, "remove")
        self._check_not_deleted(key, state, "remove")
        try:
            await resolve(self._collaborators.soft_remove(key))
        except Exception as e:
            await self._delete_failed(key, e, "Failed to remove row")
            return False
        latest = self._table.get(key)
        if latest is not None:
            self._put(key, replace(latest, lifecycle=Lifecycle.DELETED))
        if self._editing_id == key:
            self._editing_id = None
        logger.info("soft removed row %s", key)
        return True

    async def _delete_failed(self, key: RowKey, exc: Exception, default: str) -> None:
        message = _message(exc, default)
        latest = self._table.get(key)
        if self._persist_delete_errors and latest is not None:
            # lifecycle はそのまま、row_error のみ記録
            self._put(key, replace(latest, row_error=message))
        await self._notify(
            RowOperationError("delete", message, row_id=key, cause=exc),
            ErrorContext(operation="delete", row_id=key, row=dict(latest.current) if latest else None),
        )

    # ---- batch commit -------------------------------------------------

    async def bulk_save(self) -> BulkSaveResult | None:
        """Commit every pending creation and update in one collaborator call.

        Returns:
            The collaborator's result, or None when there was nothing to
            send or the call itself raised
        """
        if self._collaborators.bulk_save is None:
            raise MissingCollaboratorError("bulk_save collaborator not configured")

        submitted_table = self._table
        changes = track_changes(submitted_table)
        if not changes.has_commit_work:
            logger.debug("bulk save skipped: no new or modified rows")
            return None
        # 送信した新規レコード (オブジェクト同一性) -> 行キー
        submitted_new: dict[int, RowKey] = {
            id(record): key for key, record in zip(new_row_keys(submitted_table), changes.new)
        }

        try:
            result = BulkSaveResult.coerce(await resolve(self._collaborators.bulk_save(changes)))
        except Exception as e:
            await self._notify(
                RowOperationError("bulk_save", _message(e, "Failed to save changes"), cause=e),
                ErrorContext(operation="bulk_save", changes=changes),
            )
            return None

        table = self._table
        updates: dict[RowKey, RowState] = {}
        for record in result.success:
            updates[self._identity.identify(record)] = create_row_state(record)

        failed_keys: list[RowKey] = []
        for item in result.failed:
            key = submitted_new.get(id(item.row))
            if key is None:
                key = self._identity.identify(item.row)
            failed_keys.append(key)
            existing = updates.get(key) or table.get(key)
            if existing is None:
                existing = create_row_state(item.row, is_new=self._identity.is_placeholder(key))
            updates[key] = replace(existing, lifecycle=Lifecycle.ERROR, row_error=item.error)

        retired = self._retired_placeholders(changes, result, submitted_new, updates, failed_keys)
        self._table = table.updated(updates, remove=retired)
        self._editing_id = None

        logger.log(SUMMARY_LEVEL, render_bulk_result_line(result))
        for key, item in zip(failed_keys, result.failed):
            await self._notify(
                RowOperationError("bulk_save", item.error, row_id=key),
                ErrorContext(operation="bulk_save", row_id=key, row=item.row, changes=changes),
            )
        return result

    def _retired_placeholders(
        self,
        changes: TableChanges,
        result: BulkSaveResult,
        submitted_new: Mapping[int, RowKey],
        updates: Mapping[RowKey, RowState],
        failed_keys: list[RowKey],
    ) -> list[RowKey]:
        """Placeholder rows superseded by their persisted form.

        Only retired when the collaborator accounted for every submitted
        row; otherwise a new row could silently vanish.
        """
        submitted = len(changes.new) + len(changes.modified)
        if len(result.success) + len(result.failed) < submitted:
            if submitted_new:
                logger.warning(
                    "bulk save answered %d of %d rows; keeping placeholder rows",
                    len(result.success) + len(result.failed), submitted,
                )
            return []
        return [
            key
            for key in submitted_new.values()
            if self._identity.is_placeholder(key) and key not in failed_keys and key not in updates
        ]
