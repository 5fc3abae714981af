from __future__ import annotations

import itertools
import uuid
from collections.abc import Callable

from ..models.row_state import Record, RowKey

"""Row identity derivation.

Key resolution order:
1. a caller-supplied identify function (authoritative)
2. the record's identity field (``id`` by default) when not None
3. a placeholder key for brand-new, not yet persisted records

Placeholders only identify the tracked row they were issued to. A record
without a natural key gets a different placeholder every time it is
identified again, so callers whose records lack a natural key must supply
an identify function.
"""

__all__ = [
    "IdentifyFn",
    "RowIdentity",
    "identify",
]

IdentifyFn = Callable[[Record], RowKey]


def identify(
    record: Record,
    custom_fn: IdentifyFn | None = None,
    identity_field: str = "id",
    placeholder: Callable[[], RowKey] | None = None,
) -> RowKey:
    """Derive a row key; without a placeholder factory the fallback is UUID based."""
    if custom_fn is not None:
        return custom_fn(record)
    value = record.get(identity_field)
    if value is not None:
        return value
    if placeholder is not None:
        return placeholder()
    return f"new-{uuid.uuid4().hex}"


class RowIdentity:
    """Identity derivation with a per-instance placeholder counter.

    Placeholders are ``<prefix>1``, ``<prefix>2``, ... and never repeat
    within one instance. Issued placeholders are remembered so they can be
    told apart from natural keys that happen to share the prefix.
    """

    def __init__(
        self,
        custom_fn: IdentifyFn | None = None,
        identity_field: str = "id",
        placeholder_prefix: str = "new-",
    ) -> None:
        self._custom_fn = custom_fn
        self._identity_field = identity_field
        self._prefix = placeholder_prefix
        self._counter = itertools.count(1)
        self._issued: set[str] = set()

    @property
    def identity_field(self) -> str:
        return self._identity_field

    def identify(self, record: Record) -> RowKey:
        return identify(record, self._custom_fn, self._identity_field, self.placeholder)

    __call__ = identify

    def placeholder(self) -> str:
        key = f"{self._prefix}{next(self._counter)}"
        self._issued.add(key)
        return key

    def is_placeholder(self, key: RowKey) -> bool:
        return isinstance(key, str) and key in self._issued
