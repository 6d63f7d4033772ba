"""Executor capability: the only way the engine reaches installation routines."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Protocol, Sequence

from servercfg.kernel.errors import ExecutorNotFound
from servercfg.kernel.types import Task


SAFE_ENV_KEYS = ["PATH", "HOME", "USER", "LOGNAME", "LANG", "LC_ALL", "TERM", "TMPDIR"]
MISSING_SCRIPT_EXIT_CODE = 127


class Executor(Protocol):
    executor_ref: str

    def run(self) -> int:
        ...


class CallableExecutor:
    def __init__(self, executor_ref: str, fn: Callable[[], int]) -> None:
        self.executor_ref = executor_ref
        self._fn = fn

    def run(self) -> int:
        return int(self._fn())


class ScriptExecutor:
    """Runs ``bash <scripts_root>/<script> <args>`` and returns its exit code."""

    def __init__(
        self,
        executor_ref: str,
        script: str,
        args: Sequence[str] = (),
        *,
        scripts_root: Path,
        dry_run: bool = False,
    ) -> None:
        self.executor_ref = executor_ref
        self.script = script
        self.args: List[str] = [str(item) for item in args]
        self.scripts_root = Path(scripts_root)
        self.dry_run = bool(dry_run)

    @property
    def script_path(self) -> Path:
        return self.scripts_root / self.script

    def command(self) -> List[str]:
        return ["bash", str(self.script_path)] + list(self.args)

    def run(self) -> int:
        if self.dry_run:
            return 0
        if not self.script_path.is_file():
            return MISSING_SCRIPT_EXIT_CODE

        safe_env: Dict[str, str] = {}
        for key in SAFE_ENV_KEYS:
            value = os.getenv(key)
            if value is not None:
                safe_env[key] = value

        completed = subprocess.run(
            self.command(),
            cwd=str(self.scripts_root),
            env=safe_env,
            check=False,
        )
        return int(completed.returncode)


class ExecutorTable:
    """Maps executor refs to executors; lookups happen while the catalog is built."""

    def __init__(self) -> None:
        self._executors: Dict[str, Executor] = {}

    def bind(self, executor: Executor) -> None:
        self._executors[executor.executor_ref] = executor

    def resolve(self, executor_ref: str) -> Executor:
        executor = self._executors.get(executor_ref)
        if executor is None:
            raise ExecutorNotFound(executor_ref)
        return executor

    def bind_tasks(self, tasks: Iterable[Task]) -> Dict[str, Executor]:
        """Resolve each task's executor up front, keyed by task id."""

        return {task.task_id: self.resolve(task.executor_ref) for task in tasks}

    def refs(self) -> List[str]:
        return sorted(self._executors.keys())

    def __contains__(self, executor_ref: object) -> bool:
        return executor_ref in self._executors

    def __len__(self) -> int:
        return len(self._executors)
