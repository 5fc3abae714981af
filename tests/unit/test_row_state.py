from __future__ import annotations

import pytest

from recordstate.models.row_state import (
    Lifecycle,
    RowState,
    create_row_state,
    records_equal,
    update_row_state,
)

"""Unit tests for RowState and dirty detection."""


def test_records_equal_same_fields():
    assert records_equal({"id": 1, "price": 10}, {"price": 10, "id": 1})


def test_records_equal_different_value():
    assert not records_equal({"id": 1, "price": 10}, {"id": 1, "price": 20})


def test_records_equal_missing_key_is_not_equal():
    """A key present on one side only makes the records differ, even if None."""
    assert not records_equal({"id": 1, "note": None}, {"id": 1})
    assert not records_equal({}, {"id": 1})


def test_records_equal_nested_mappings():
    a = {"id": 1, "address": {"city": "Oslo", "zip": "0150"}}
    b = {"id": 1, "address": {"zip": "0150", "city": "Oslo"}}
    c = {"id": 1, "address": {"city": "Bergen", "zip": "0150"}}
    assert records_equal(a, b)
    assert not records_equal(a, c)


def test_records_equal_none_handling():
    assert records_equal(None, None)
    assert not records_equal(None, {})


def test_create_row_state_existing_record():
    state = create_row_state({"id": "r1", "price": 10})
    assert dict(state.original) == {"id": "r1", "price": 10}
    assert dict(state.current) == {"id": "r1", "price": 10}
    assert state.lifecycle is Lifecycle.IDLE
    assert state.is_new is False
    assert state.is_dirty is False
    assert state.field_errors is None
    assert state.row_error is None


def test_create_row_state_new_record_has_empty_original():
    state = create_row_state({}, is_new=True)
    assert state.original is not None
    assert dict(state.original) == {}
    assert state.is_new is True


def test_row_state_mappings_are_read_only():
    source = {"id": "r1", "price": 10}
    state = create_row_state(source)
    source["price"] = 99  # caller mutates its own dict afterwards
    assert state.current["price"] == 10
    with pytest.raises(TypeError):
        state.current["price"] = 5  # type: ignore[index]


def test_update_row_state_recomputes_dirty():
    state = create_row_state({"id": "r1", "price": 10})
    changed = update_row_state(state, current={"id": "r1", "price": 20})
    assert changed.is_dirty is True
    reverted = update_row_state(changed, current={"id": "r1", "price": 10})
    assert reverted.is_dirty is False


def test_update_row_state_ignores_stale_dirty_flag():
    state = create_row_state({"id": "r1", "price": 10})
    changed = update_row_state(state, current={"id": "r1", "price": 20}, is_dirty=False)
    assert changed.is_dirty is True


def test_update_row_state_without_snapshot_change_keeps_flag():
    state = RowState(original={"a": 1}, current={"a": 2}, is_dirty=True)
    moved = update_row_state(state, lifecycle=Lifecycle.EDITING)
    assert moved.is_dirty is True
    assert moved.lifecycle is Lifecycle.EDITING


def test_has_errors():
    state = create_row_state({"id": 1})
    assert not state.has_errors
    assert update_row_state(state, row_error="boom").has_errors
    assert update_row_state(state, field_errors={"name": "required"}).has_errors


def test_row_state_is_unhashable_but_comparable():
    a = create_row_state({"id": 1, "price": 10})
    b = create_row_state({"id": 1, "price": 10})
    assert a == b
    with pytest.raises(TypeError):
        hash(a)
