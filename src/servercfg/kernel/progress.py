"""Completion percentages derived from the registry and the state ledger."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from servercfg.kernel.registry import TaskRegistry
from servercfg.kernel.state_store import StateStore
from servercfg.kernel.types import Category, Progress, Task, compute_progress


class ProgressReporter:
    def __init__(self, registry: TaskRegistry, state_store: StateStore) -> None:
        self._registry = registry
        self._state_store = state_store

    def overall_progress(self) -> Progress:
        return self._progress_for(self._registry.tasks())

    def category_progress(self, category_id: str) -> Progress:
        return self._progress_for(self._registry.tasks_in_category(category_id))

    def category_breakdown(self) -> List[Tuple[Category, Progress]]:
        """Per-category progress in display order; empty categories are left out."""

        rows: List[Tuple[Category, Progress]] = []
        for category in self._registry.categories():
            tasks = self._registry.tasks_in_category(category.category_id)
            if not tasks:
                continue
            rows.append((category, self._progress_for(tasks)))
        return rows

    def _progress_for(self, tasks: Iterable[Task]) -> Progress:
        # Completed ids that are no longer registered do not count.
        completed = set(self._state_store.snapshot().completed)
        total = 0
        done = 0
        for task in tasks:
            total += 1
            if task.task_id in completed:
                done += 1
        return compute_progress(done, total)
