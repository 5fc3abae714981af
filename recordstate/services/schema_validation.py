from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jsonschema.exceptions import ValidationError
from jsonschema.validators import validator_for

from ..models.row_state import Record

"""JSON Schema backed schema layer.

JsonSchemaValidator turns a JSON Schema into a ``schema_validate`` callable:
each validation error becomes ``{"dotted.path": message}``. For ``required``
errors the missing property name is appended to the path, so a missing
``email`` is reported under ``email`` rather than under the record root.
Only the first message per path is kept.
"""

__all__ = [
    "JsonSchemaValidator",
]


def _missing_property(error: ValidationError) -> str | None:
    instance = error.instance
    required = error.validator_value
    if not isinstance(instance, Mapping) or not isinstance(required, list):
        return None
    missing = [name for name in required if name not in instance]
    for name in missing:
        if error.message.startswith(repr(name)):
            return name
    return missing[0] if missing else None


def _error_key(error: ValidationError) -> str:
    path = [str(part) for part in error.absolute_path]
    if error.validator == "required":
        name = _missing_property(error)
        if name is not None:
            path.append(name)
    return ".".join(path)


class JsonSchemaValidator:
    """Schema layer validator for a JSON Schema document."""

    def __init__(self, schema: Mapping[str, Any]) -> None:
        cls = validator_for(schema)
        cls.check_schema(schema)
        self._validator = cls(schema)

    def __call__(self, record: Record) -> dict[str, str] | None:
        errors: dict[str, str] = {}
        for error in self._validator.iter_errors(dict(record)):
            errors.setdefault(_error_key(error), error.message)
        return errors or None
