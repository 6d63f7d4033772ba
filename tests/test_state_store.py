from __future__ import annotations

import json
from pathlib import Path

import pytest

import servercfg.kernel.state_store as state_store_module
from servercfg.kernel.errors import PersistenceError, TaskBusy
from servercfg.kernel.state_store import StateStore


def test_missing_file_loads_empty_record(tmp_path: Path):
    store = StateStore(tmp_path / "state" / "state.json")
    record = store.snapshot()
    assert record.completed == []
    assert record.in_progress is None
    assert record.last_run is None


@pytest.mark.parametrize("content", ["", "not json", "[1, 2]", "{\"completed\": 5}"])
def test_malformed_file_loads_empty_record(tmp_path: Path, content: str):
    path = tmp_path / "state.json"
    path.write_text(content, encoding="utf-8")
    store = StateStore(path)
    assert store.snapshot().completed == []


def test_mark_completed_is_idempotent(tmp_path: Path):
    path = tmp_path / "state.json"
    store = StateStore(path)
    store.mark_completed("1.1")
    store.mark_completed("1.1")

    assert store.snapshot().completed == ["1.1"]
    persisted = json.loads(path.read_text(encoding="utf-8"))
    assert persisted["completed"] == ["1.1"]


def test_in_progress_lifecycle_persists(tmp_path: Path):
    path = tmp_path / "state.json"
    store = StateStore(path)

    store.mark_in_progress("2.2")
    assert store.is_in_progress("2.2")
    assert store.snapshot().last_run is not None

    reloaded = StateStore(path)
    assert reloaded.in_progress() == "2.2"

    store.mark_failed("2.2")
    assert store.in_progress() is None
    assert not store.is_completed("2.2")

    store.mark_in_progress("2.2")
    store.mark_completed("2.2")
    assert store.in_progress() is None
    assert store.is_completed("2.2")


def test_mark_failed_leaves_other_in_progress_slot(tmp_path: Path):
    store = StateStore(tmp_path / "state.json")
    store.mark_in_progress("1.1")
    store.mark_failed("9.9")
    assert store.in_progress() == "1.1"


def test_last_write_wins_by_default(tmp_path: Path):
    store = StateStore(tmp_path / "state.json")
    store.mark_in_progress("1.1")
    store.mark_in_progress("1.2")
    assert store.in_progress() == "1.2"


def test_exclusive_in_progress_raises_task_busy(tmp_path: Path):
    store = StateStore(tmp_path / "state.json", exclusive_in_progress=True)
    store.mark_in_progress("1.1")
    store.mark_in_progress("1.1")

    with pytest.raises(TaskBusy) as exc_info:
        store.mark_in_progress("1.2")
    assert exc_info.value.running_task_id == "1.1"
    assert store.in_progress() == "1.1"


def test_reset_clears_everything(tmp_path: Path):
    path = tmp_path / "state.json"
    store = StateStore(path)
    store.mark_completed("1.1")
    store.mark_in_progress("1.2")
    store.reset()

    persisted = json.loads(path.read_text(encoding="utf-8"))
    assert persisted == {"completed": [], "in_progress": None, "last_run": None}


def test_write_failure_raises_and_keeps_memory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    store = StateStore(tmp_path / "state.json")
    store.mark_completed("1.1")

    def broken_write(path, content):
        raise OSError("disk full")

    monkeypatch.setattr(state_store_module, "atomic_write_text", broken_write)

    with pytest.raises(PersistenceError) as exc_info:
        store.mark_completed("1.2")
    assert "state.json" in str(exc_info.value.path)
    assert store.snapshot().completed == ["1.1"]


def test_atomic_write_leaves_no_temp_files(tmp_path: Path):
    store = StateStore(tmp_path / "state.json")
    store.mark_completed("1.1")
    store.mark_completed("1.2")
    leftovers = [item.name for item in tmp_path.iterdir() if item.name.endswith(".tmp")]
    assert leftovers == []
