"""Task registry with prerequisite links, built once at startup."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from servercfg.kernel.errors import (
    CyclicDependency,
    DuplicateCategoryId,
    DuplicateTaskId,
    TaskNotFound,
    UnknownCategory,
    UnknownPrerequisite,
)
from servercfg.kernel.types import Category, Task


@dataclass
class TaskRegistry:
    categories_by_id: Dict[str, Category] = field(default_factory=dict)
    tasks_by_id: Dict[str, Task] = field(default_factory=dict)
    _validated: bool = field(default=False, init=False, repr=False)

    @property
    def is_validated(self) -> bool:
        return self._validated

    def register_category(self, category: Category) -> None:
        if category.category_id in self.categories_by_id:
            raise DuplicateCategoryId(category.category_id)
        self.categories_by_id[category.category_id] = category
        self._validated = False

    def register(self, task: Task) -> None:
        if task.task_id in self.tasks_by_id:
            raise DuplicateTaskId(task.task_id)
        self.tasks_by_id[task.task_id] = task
        self._validated = False

    def validate(self) -> None:
        """Check referential integrity and acyclicity of prerequisite links."""

        for task in self.tasks_by_id.values():
            if self.categories_by_id and task.category_id not in self.categories_by_id:
                raise UnknownCategory(task.task_id, task.category_id)
            if task.prerequisite_id and task.prerequisite_id not in self.tasks_by_id:
                raise UnknownPrerequisite(task.task_id, task.prerequisite_id)

        for task in self.tasks_by_id.values():
            walk: List[str] = [task.task_id]
            seen = {task.task_id}
            current = task
            while current.prerequisite_id:
                next_id = current.prerequisite_id
                walk.append(next_id)
                if next_id in seen:
                    raise CyclicDependency(walk)
                seen.add(next_id)
                current = self.tasks_by_id[next_id]

        self._validated = True

    def lookup(self, task_id: str) -> Task:
        task = self.tasks_by_id.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    def get(self, task_id: str) -> Optional[Task]:
        return self.tasks_by_id.get(task_id)

    def contains(self, task_id: str) -> bool:
        return task_id in self.tasks_by_id

    def tasks(self) -> List[Task]:
        return list(self.tasks_by_id.values())

    def categories(self) -> List[Category]:
        # sorted() is stable, so equal order values keep registration order.
        return sorted(self.categories_by_id.values(), key=lambda item: item.order)

    def tasks_in_category(self, category_id: str) -> List[Task]:
        matching = [task for task in self.tasks_by_id.values() if task.category_id == category_id]
        return sorted(matching, key=lambda item: item.order)

    def prerequisite_chain(self, task_id: str) -> List[Task]:
        """Ancestors of ``task_id``, nearest first."""

        chain: List[Task] = []
        seen = {task_id}
        current = self.lookup(task_id)
        while current.prerequisite_id and current.prerequisite_id not in seen:
            seen.add(current.prerequisite_id)
            current = self.lookup(current.prerequisite_id)
            chain.append(current)
        return chain
