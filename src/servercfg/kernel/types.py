"""Core typed contracts shared by registry, state store, engine, and CLI."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NewType, Optional, Tuple

TaskId = NewType("TaskId", str)
CategoryId = NewType("CategoryId", str)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Category:
    category_id: CategoryId
    display_name: str
    order: int = 0


@dataclass(frozen=True)
class Task:
    """One unit of configuration work with an optional single prerequisite."""

    task_id: TaskId
    category_id: CategoryId
    display_name: str
    description: str = ""
    prerequisite_id: Optional[TaskId] = None
    executor_ref: str = ""
    order: int = 0


@dataclass
class StateRecord:
    """Durable completion ledger.

    ``completed`` keeps insertion order for display; uniqueness is the only
    semantic guarantee.
    """

    completed: List[str] = field(default_factory=list)
    in_progress: Optional[str] = None
    last_run: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed": list(self.completed),
            "in_progress": self.in_progress,
            "last_run": self.last_run,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateRecord":
        completed: List[str] = []
        seen = set()
        raw_completed = data.get("completed")
        if isinstance(raw_completed, list):
            for item in raw_completed:
                text = str(item or "").strip()
                if not text or text in seen:
                    continue
                seen.add(text)
                completed.append(text)

        in_progress = data.get("in_progress")
        if in_progress is not None:
            in_progress = str(in_progress).strip() or None

        last_run = data.get("last_run")
        try:
            last_run = int(last_run) if last_run is not None else None
        except (TypeError, ValueError):
            last_run = None

        return cls(completed=completed, in_progress=in_progress, last_run=last_run)


class HistoryEvent(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    RESET = "reset"


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: int
    subject_id: str
    event: HistoryEvent
    note: str = ""


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one task execution.

    ``BLOCKED`` only appears in ``execute_many`` sequences, where an unmet
    prerequisite ends the run instead of raising.
    """

    task_id: str
    status: ExecutionStatus
    code: int = 0
    note: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS


@dataclass(frozen=True)
class Progress:
    completed_count: int
    total_count: int
    percentage: int

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.completed_count, self.total_count, self.percentage)


def compute_progress(completed_count: int, total_count: int) -> Progress:
    if total_count <= 0:
        return Progress(completed_count=0, total_count=0, percentage=0)
    return Progress(
        completed_count=completed_count,
        total_count=total_count,
        percentage=(completed_count * 100) // total_count,
    )
