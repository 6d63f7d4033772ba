from __future__ import annotations

from pathlib import Path

import pytest

from servercfg.config import initialize_project_config, resolve_project_config_root
from servercfg.kernel.executors import CallableExecutor, ExecutorTable
from servercfg.kernel.registry import TaskRegistry
from servercfg.kernel.types import Category, CategoryId, Task, TaskId


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    workspace = tmp_path / "workspace"
    workspace.mkdir(parents=True, exist_ok=True)

    monkeypatch.chdir(workspace)
    monkeypatch.setenv("SERVERCFG_DRY_RUN", "1")
    monkeypatch.delenv("SERVERCFG_SCRIPTS_ROOT", raising=False)
    initialize_project_config(workspace_dir=workspace)

    return {
        "workspace": workspace,
        "config_root": resolve_project_config_root(workspace),
    }


def _make_task(task_id: str, prerequisite_id=None, category_id: str = "base", order: int = 0) -> Task:
    return Task(
        task_id=TaskId(task_id),
        category_id=CategoryId(category_id),
        display_name="Task {0}".format(task_id),
        prerequisite_id=TaskId(prerequisite_id) if prerequisite_id else None,
        executor_ref="exec:{0}".format(task_id),
        order=order,
    )


@pytest.fixture
def make_task():
    return _make_task


@pytest.fixture
def two_task_setup():
    """Registry ``1.1 <- 1.2`` with scripted executor exit codes."""

    codes = {"1.1": 0, "1.2": 0}
    calls = []

    def runner(task_id: str):
        def run() -> int:
            calls.append(task_id)
            return codes[task_id]

        return run

    registry = TaskRegistry()
    registry.register_category(Category(CategoryId("base"), "Base", order=1))
    registry.register(_make_task("1.1", order=1))
    registry.register(_make_task("1.2", prerequisite_id="1.1", order=2))
    registry.validate()

    executors = ExecutorTable()
    for task_id in codes:
        executors.bind(CallableExecutor("exec:{0}".format(task_id), runner(task_id)))

    return {"registry": registry, "executors": executors, "codes": codes, "calls": calls}
