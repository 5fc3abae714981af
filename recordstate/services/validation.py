from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from ..models.row_state import Record
from .awaitables import resolve

"""Three-layer row validation.

Layers, always all three, in this order:
1. schema  - synchronous structural check of the whole record
2. cell    - one validator per registered field, awaited one after another
3. async   - a single row-level call (server checks: uniqueness etc.),
             started only after every cell validator has settled

Results are folded left to right with shallow overwrite, so for a field
flagged by several layers the latest layer's message wins.
"""

__all__ = [
    "FieldErrors",
    "SchemaValidator",
    "CellValidator",
    "CellValidatorRegistry",
    "AsyncRowValidator",
    "ValidationOrchestrator",
    "merge_layers",
]

FieldErrors = dict[str, str]
SchemaValidator = Callable[[Record], "Mapping[str, str] | None"]
CellValidator = Callable[[Any, Record, str], "str | None | Awaitable[str | None]"]
CellValidatorRegistry = Mapping[str, CellValidator]
AsyncRowValidator = Callable[[Record, bool], "Mapping[str, str] | None | Awaitable[Mapping[str, str] | None]"]

logger = logging.getLogger(__name__)


def _as_field_errors(value: Any, layer: str) -> FieldErrors | None:
    if not value:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"{layer} layer must return a mapping or None, got {type(value).__name__}")
    return {str(field): str(message) for field, message in value.items()}


def merge_layers(layers: Iterable[Mapping[str, str] | None]) -> FieldErrors | None:
    """Fold layer results in order; a later layer overwrites an earlier one per field.

    Only top-level keys are merged; nested values are opaque.

    Returns:
        The merged mapping, or None when no layer reported anything
    """
    merged: FieldErrors = {}
    for layer in layers:
        if not layer:
            continue
        for field, message in layer.items():
            merged[field] = message
    return merged or None


class ValidationOrchestrator:
    """Runs the schema, cell and async layers for one record."""

    def __init__(
        self,
        schema_validate: SchemaValidator | None = None,
        cell_validators: CellValidatorRegistry | None = None,
        async_validate: AsyncRowValidator | None = None,
    ) -> None:
        self._schema_validate = schema_validate
        self._cell_validators: dict[str, CellValidator] = dict(cell_validators or {})
        self._async_validate = async_validate

    def has_cell_validator(self, field: str) -> bool:
        return field in self._cell_validators

    def validate_schema(self, record: Record) -> FieldErrors | None:
        if self._schema_validate is None:
            return None
        return _as_field_errors(self._schema_validate(record), "schema")

    async def validate_cell(self, field: str, record: Record) -> str | None:
        """Run the validator registered for ``field``; None when it passes or none is registered."""
        validator = self._cell_validators.get(field)
        if validator is None:
            return None
        message = await resolve(validator(record.get(field), record, field))
        return str(message) if message else None

    async def validate_cells(self, record: Record) -> FieldErrors | None:
        errors: FieldErrors = {}
        for field in self._cell_validators:
            message = await self.validate_cell(field, record)
            if message:
                errors[field] = message
        return errors or None

    async def validate_async(self, record: Record, is_new: bool) -> FieldErrors | None:
        if self._async_validate is None:
            return None
        return _as_field_errors(await resolve(self._async_validate(record, is_new)), "async")

    async def validate(self, record: Record, is_new: bool) -> FieldErrors | None:
        """Run all three layers and merge them.

        Returns:
            None when the record passes, else the field -> message mapping
        """
        schema_errors = self.validate_schema(record)
        cell_errors = await self.validate_cells(record)
        async_errors = await self.validate_async(record, is_new)
        merged = merge_layers((schema_errors, cell_errors, async_errors))
        if merged:
            logger.debug("validation failed fields=%s", sorted(merged))
        return merged
