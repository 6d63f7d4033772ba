"""Task execution: prerequisite gating, state transitions and outcome recording."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from servercfg.kernel.debug_log import DebugLogWriter
from servercfg.kernel.errors import ExecutorNotFound, PrerequisiteUnmet, RegistryNotValidated
from servercfg.kernel.executors import ExecutorTable
from servercfg.kernel.history import HistoryLog
from servercfg.kernel.registry import TaskRegistry
from servercfg.kernel.state_store import StateStore
from servercfg.kernel.types import ExecutionResult, ExecutionStatus, HistoryEvent

EngineEventSink = Callable[[str, Dict[str, Any]], None]

EXECUTOR_EXCEPTION_CODE = 1


class OrchestrationEngine:
    """Runs one task at a time against the registry, state ledger and history.

    ``execute`` never retries and never rolls back. The only blocking point is
    the executor call.
    """

    def __init__(
        self,
        *,
        registry: TaskRegistry,
        state_store: StateStore,
        history: HistoryLog,
        executors: ExecutorTable,
        debug_log: Optional[DebugLogWriter] = None,
        event_sink: Optional[EngineEventSink] = None,
    ) -> None:
        self._registry = registry
        self._state_store = state_store
        self._history = history
        self._bound_executors = executors.bind_tasks(registry.tasks())
        self._debug_log = debug_log
        self._event_sink = event_sink

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    @property
    def state_store(self) -> StateStore:
        return self._state_store

    @property
    def history(self) -> HistoryLog:
        return self._history

    def execute(self, task_id: str) -> ExecutionResult:
        if not self._registry.is_validated:
            raise RegistryNotValidated()

        task = self._registry.lookup(task_id)
        prerequisite_id = task.prerequisite_id
        if prerequisite_id and not self._state_store.is_completed(prerequisite_id):
            self._log(
                "engine.execute.blocked",
                task.task_id,
                "prerequisite not completed",
                level="warn",
                data={"prerequisite_id": prerequisite_id},
            )
            raise PrerequisiteUnmet(task.task_id, prerequisite_id)

        executor = self._bound_executors.get(task.task_id)
        if executor is None:
            raise ExecutorNotFound(task.executor_ref)

        self._state_store.mark_in_progress(task.task_id)
        self._history.append(HistoryEvent.STARTED, task.task_id)
        self._log(
            "engine.execute.started",
            task.task_id,
            "task started",
            data={"executor_ref": task.executor_ref},
        )
        self._emit("task.started", {"task_id": task.task_id})

        note = ""
        try:
            code = int(executor.run())
        except Exception as exc:
            code = EXECUTOR_EXCEPTION_CODE
            note = "{0}: {1}".format(type(exc).__name__, exc)
            self._log(
                "engine.execute.error",
                task.task_id,
                "executor raised",
                level="error",
                data={"error": note},
            )

        if code == 0:
            self._state_store.mark_completed(task.task_id)
            self._history.append(HistoryEvent.COMPLETED, task.task_id)
            self._log("engine.execute.completed", task.task_id, "task completed")
            self._emit("task.completed", {"task_id": task.task_id})
            return ExecutionResult(task_id=task.task_id, status=ExecutionStatus.SUCCESS, code=0)

        self._state_store.mark_failed(task.task_id)
        self._history.append(HistoryEvent.FAILED, task.task_id, note=note or str(code))
        self._log(
            "engine.execute.failed",
            task.task_id,
            "task failed",
            level="warn",
            data={"code": code},
        )
        self._emit("task.failed", {"task_id": task.task_id, "code": code})
        return ExecutionResult(
            task_id=task.task_id,
            status=ExecutionStatus.FAILURE,
            code=code,
            note=note,
        )

    def execute_many(self, task_ids: Iterable[str]) -> List[ExecutionResult]:
        """Run tasks in order, stopping at the first result that is not a success.

        An unmet prerequisite ends the run as a ``BLOCKED`` result instead of
        raising. Unknown task ids still raise ``TaskNotFound``.
        """

        results: List[ExecutionResult] = []
        for task_id in task_ids:
            try:
                result = self.execute(task_id)
            except PrerequisiteUnmet as exc:
                result = ExecutionResult(
                    task_id=exc.task_id,
                    status=ExecutionStatus.BLOCKED,
                    code=0,
                    note=exc.prerequisite_id,
                )
            results.append(result)
            if not result.ok:
                break
        return results

    def reset(self) -> None:
        self._state_store.reset()
        self._history.append(HistoryEvent.RESET, "*")
        self._log("engine.reset", "*", "state reset")
        self._emit("state.reset", {})

    def _log(
        self,
        kind: str,
        subject_id: str,
        message: str,
        *,
        level: str = "info",
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self._debug_log is None:
            return
        self._debug_log.write_entry(
            component="engine",
            kind=kind,
            subject_id=subject_id,
            message=message,
            level=level,
            data=data,
        )

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self._event_sink is None:
            return
        try:
            self._event_sink(str(event_type), dict(payload))
        except Exception:
            return
