"""Shared exception taxonomy for registry, state, and execution failures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Sequence


class ServerConfigError(RuntimeError):
    """Base error carrying structured details for user-facing messages."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self._details: Dict[str, Any] = {}
        for key, value in details.items():
            if value is None:
                continue
            self._details[str(key)] = value

    @property
    def details(self) -> Dict[str, Any]:
        return dict(self._details)


def error_summary(exc: BaseException) -> str:
    detail = exc.details if isinstance(exc, ServerConfigError) else {}
    ordered_keys = (
        "task_id",
        "prerequisite_id",
        "category_id",
        "executor_ref",
        "field",
        "path",
    )
    segments = [str(exc)]
    for key in ordered_keys:
        value = detail.get(key)
        if value in ("", None):
            continue
        segments.append("{0}={1}".format(key, value))
    chain = detail.get("chain")
    if isinstance(chain, list) and chain:
        segments.append("chain={0}".format(" -> ".join(str(item) for item in chain)))
    return " | ".join(segments)


class TaskNotFound(ServerConfigError):
    def __init__(self, task_id: str) -> None:
        super().__init__("unknown task: {0}".format(task_id), task_id=task_id)
        self.task_id = task_id


class RegistryError(ServerConfigError):
    """Registry construction failure; blocks startup."""


class DuplicateTaskId(RegistryError):
    def __init__(self, task_id: str) -> None:
        super().__init__("duplicate task id: {0}".format(task_id), task_id=task_id)
        self.task_id = task_id


class DuplicateCategoryId(RegistryError):
    def __init__(self, category_id: str) -> None:
        super().__init__(
            "duplicate category id: {0}".format(category_id),
            category_id=category_id,
        )
        self.category_id = category_id


class UnknownPrerequisite(RegistryError):
    def __init__(self, task_id: str, prerequisite_id: str) -> None:
        super().__init__(
            "task {0} requires unknown task {1}".format(task_id, prerequisite_id),
            task_id=task_id,
            prerequisite_id=prerequisite_id,
        )
        self.task_id = task_id
        self.prerequisite_id = prerequisite_id


class UnknownCategory(RegistryError):
    def __init__(self, task_id: str, category_id: str) -> None:
        super().__init__(
            "task {0} belongs to unknown category {1}".format(task_id, category_id),
            task_id=task_id,
            category_id=category_id,
        )
        self.task_id = task_id
        self.category_id = category_id


class CyclicDependency(RegistryError):
    def __init__(self, chain: Sequence[str]) -> None:
        items = [str(item) for item in chain]
        super().__init__(
            "prerequisite cycle detected starting at {0}".format(items[0] if items else ""),
            task_id=items[0] if items else None,
            chain=items,
        )
        self.chain = items


class RegistryNotValidated(RegistryError):
    def __init__(self) -> None:
        super().__init__("task registry must be validated before execution")


class PrerequisiteUnmet(ServerConfigError):
    def __init__(self, task_id: str, prerequisite_id: str) -> None:
        super().__init__(
            "task {0} requires {1} to be completed first".format(task_id, prerequisite_id),
            task_id=task_id,
            prerequisite_id=prerequisite_id,
        )
        self.task_id = task_id
        self.prerequisite_id = prerequisite_id


class TaskBusy(ServerConfigError):
    def __init__(self, task_id: str, running_task_id: str) -> None:
        super().__init__(
            "task {0} cannot start while {1} is in progress".format(task_id, running_task_id),
            task_id=task_id,
            running_task_id=running_task_id,
        )
        self.task_id = task_id
        self.running_task_id = running_task_id


class PersistenceError(ServerConfigError):
    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message, path=str(path))
        self.path = path


class ExecutorNotFound(ServerConfigError):
    def __init__(self, executor_ref: str) -> None:
        super().__init__(
            "no executor bound to {0}".format(executor_ref),
            executor_ref=executor_ref,
        )
        self.executor_ref = executor_ref


class WizardStateError(ServerConfigError):
    """Operation not allowed in the wizard session's current state."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(
            "cannot {0} while wizard is {1}".format(operation, state),
            operation=operation,
            state=state,
        )
        self.operation = operation
        self.state = state


class ProjectConfigError(ServerConfigError):
    pass
