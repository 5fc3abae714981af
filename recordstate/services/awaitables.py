from __future__ import annotations

import inspect
from typing import Any

"""Helpers for collaborators that may be either sync or async."""

__all__ = [
    "resolve",
]


async def resolve(value: Any) -> Any:
    """Await ``value`` if it is awaitable, else return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value
