from __future__ import annotations

import asyncio

import pytest

from recordstate.services.validation import ValidationOrchestrator, merge_layers

"""Unit tests for the three-layer validation pipeline."""


def test_merge_layers_later_layer_wins():
    merged = merge_layers([
        {"email": "required", "name": "too short"},
        {"name": "contains digits"},
        {"email": "already taken"},
    ])
    assert merged == {"email": "already taken", "name": "contains digits"}


def test_merge_layers_empty_is_none():
    assert merge_layers([None, {}, None]) is None


def test_merge_layers_is_shallow():
    merged = merge_layers([{"address": {"city": "required"}}, {"address": "invalid"}])
    assert merged == {"address": "invalid"}


@pytest.mark.asyncio
async def test_passing_record_returns_none():
    orchestrator = ValidationOrchestrator(
        schema_validate=lambda r: None,
        cell_validators={"price": lambda v, r, f: None},
        async_validate=lambda r, is_new: None,
    )
    assert await orchestrator.validate({"price": 1}, is_new=False) is None


@pytest.mark.asyncio
async def test_no_layers_configured():
    assert await ValidationOrchestrator().validate({"a": 1}, is_new=True) is None


@pytest.mark.asyncio
async def test_schema_then_async_precedence():
    """Schema flags email as required, the server says taken: server wins."""
    orchestrator = ValidationOrchestrator(
        schema_validate=lambda r: {"email": "required"},
        async_validate=lambda r, is_new: {"email": "already taken"},
    )
    assert await orchestrator.validate({}, is_new=True) == {"email": "already taken"}


@pytest.mark.asyncio
async def test_all_layers_run_even_after_failure():
    calls: list[str] = []

    def schema(record):
        calls.append("schema")
        return {"name": "required"}

    def cell(value, record, field):
        calls.append(f"cell:{field}")
        return "negative" if value < 0 else None

    async def server(record, is_new):
        calls.append("async")
        return {"sku": "duplicate"}

    orchestrator = ValidationOrchestrator(schema, {"price": cell}, server)
    result = await orchestrator.validate({"price": -1}, is_new=False)
    assert calls == ["schema", "cell:price", "async"]
    assert result == {"name": "required", "price": "negative", "sku": "duplicate"}


@pytest.mark.asyncio
async def test_only_registered_fields_are_checked():
    seen: list[str] = []

    def cell(value, record, field):
        seen.append(field)
        return None

    orchestrator = ValidationOrchestrator(cell_validators={"price": cell})
    await orchestrator.validate({"price": 1, "name": "x", "qty": 3}, is_new=False)
    assert seen == ["price"]


@pytest.mark.asyncio
async def test_cell_validator_receives_value_record_and_field():
    received = []

    def cell(value, record, field):
        received.append((value, dict(record), field))
        return None

    orchestrator = ValidationOrchestrator(cell_validators={"qty": cell, "missing": cell})
    await orchestrator.validate({"qty": 3}, is_new=False)
    assert received == [(3, {"qty": 3}, "qty"), (None, {"qty": 3}, "missing")]


@pytest.mark.asyncio
async def test_async_layer_starts_after_all_cell_validators_settled():
    events: list[str] = []

    async def slow_cell(value, record, field):
        events.append(f"start:{field}")
        await asyncio.sleep(0.01)
        events.append(f"end:{field}")
        return None

    async def server(record, is_new):
        events.append("async")
        return None

    orchestrator = ValidationOrchestrator(
        cell_validators={"a": slow_cell, "b": slow_cell}, async_validate=server
    )
    await orchestrator.validate({"a": 1, "b": 2}, is_new=True)
    assert events == ["start:a", "end:a", "start:b", "end:b", "async"]


@pytest.mark.asyncio
async def test_async_layer_receives_is_new():
    flags = []

    def server(record, is_new):
        flags.append(is_new)
        return None

    orchestrator = ValidationOrchestrator(async_validate=server)
    await orchestrator.validate({}, is_new=True)
    await orchestrator.validate({}, is_new=False)
    assert flags == [True, False]


@pytest.mark.asyncio
async def test_cell_layer_overrides_schema_for_same_field():
    orchestrator = ValidationOrchestrator(
        schema_validate=lambda r: {"price": "must be a number"},
        cell_validators={"price": lambda v, r, f: "must be positive"},
    )
    assert await orchestrator.validate({"price": -1}, is_new=False) == {"price": "must be positive"}


@pytest.mark.asyncio
async def test_empty_message_counts_as_pass():
    orchestrator = ValidationOrchestrator(cell_validators={"price": lambda v, r, f: ""})
    assert await orchestrator.validate({"price": 1}, is_new=False) is None


@pytest.mark.asyncio
async def test_validate_cell_single_field():
    orchestrator = ValidationOrchestrator(cell_validators={"price": lambda v, r, f: "bad" if v < 0 else None})
    assert await orchestrator.validate_cell("price", {"price": -5}) == "bad"
    assert await orchestrator.validate_cell("price", {"price": 5}) is None
    assert await orchestrator.validate_cell("unregistered", {"price": 5}) is None


@pytest.mark.asyncio
async def test_layer_returning_non_mapping_is_rejected():
    orchestrator = ValidationOrchestrator(schema_validate=lambda r: ["not", "a", "mapping"])
    with pytest.raises(TypeError, match="schema layer"):
        await orchestrator.validate({}, is_new=False)
