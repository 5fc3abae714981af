# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import pytest

from recordstate.logging.init import reset_logging
from recordstate.models.changes import BulkSaveResult, FailedRow, TableChanges


class FakeBackend:
    """In-memory stand-in for the persistence collaborators.

    Records every call; failures are switched on per operation by setting
    ``fail_<op>`` to an exception instance.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.next_id = 100
        self.fail_save: Exception | None = None
        self.fail_delete: Exception | None = None
        self.fail_soft_remove: Exception | None = None
        self.fail_bulk_save: Exception | None = None
        self.bulk_failures: dict[Any, str] = {}  # id -> error message

    def _assign_id(self, record: dict[str, Any]) -> dict[str, Any]:
        saved = dict(record)
        if saved.get("id") is None:
            self.next_id += 1
            saved["id"] = f"r{self.next_id}"
        return saved

    async def save(self, current: dict[str, Any], original: dict[str, Any] | None) -> dict[str, Any]:
        self.calls.append(("save", (current, original)))
        if self.fail_save is not None:
            raise self.fail_save
        return self._assign_id(current)

    async def delete(self, row_id: Any) -> None:
        self.calls.append(("delete", row_id))
        if self.fail_delete is not None:
            raise self.fail_delete

    def soft_remove(self, row_id: Any) -> None:  # sync on purpose
        self.calls.append(("soft_remove", row_id))
        if self.fail_soft_remove is not None:
            raise self.fail_soft_remove

    async def bulk_save(self, changes: TableChanges) -> BulkSaveResult:
        self.calls.append(("bulk_save", changes))
        if self.fail_bulk_save is not None:
            raise self.fail_bulk_save
        success: list[dict[str, Any]] = []
        failed: list[FailedRow] = []
        rows = list(changes.new) + [m.updated for m in changes.modified]
        for row in rows:
            error = self.bulk_failures.get(row.get("id"))
            if error is not None:
                failed.append(FailedRow(row=row, error=error))
            else:
                success.append(self._assign_id(row))
        return BulkSaveResult(success=success, failed=failed)

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)


class ErrorCollector:
    """Error sink that keeps every (error, context) pair."""

    def __init__(self) -> None:
        self.errors: list[tuple[Any, Any]] = []

    def __call__(self, error, context) -> None:
        self.errors.append((error, context))

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e, _ in self.errors]

    @property
    def operations(self) -> list[str]:
        return [c.operation for _, c in self.errors]


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def errors() -> ErrorCollector:
    return ErrorCollector()


@pytest.fixture()
def sample_records() -> list[dict[str, Any]]:
    return [
        {"id": "r1", "name": "Widget", "price": 10},
        {"id": "r2", "name": "Gadget", "price": 25},
        {"id": "r3", "name": "Doohickey", "price": 7},
    ]


@pytest.fixture()
def make_engine(backend: FakeBackend, errors: ErrorCollector, sample_records):
    """Factory building an engine wired to the fake backend and error collector."""
    from recordstate.services.engine import EditableRecordEngine

    def _make(records=None, **kwargs) -> EditableRecordEngine:
        params: dict[str, Any] = {
            "save": backend.save,
            "bulk_save": backend.bulk_save,
            "delete": backend.delete,
            "soft_remove": backend.soft_remove,
            "on_error": errors,
        }
        params.update(kwargs)
        return EditableRecordEngine(sample_records if records is None else records, **params)

    return _make


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """identity_field: id
placeholder_prefix: "tmp-"
lock_saving_rows: true
persist_delete_errors: true
log_level: INFO
error_log_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "engine.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    reset_logging()
