from __future__ import annotations

import pytest

from servercfg.kernel.errors import (
    CyclicDependency,
    DuplicateCategoryId,
    DuplicateTaskId,
    TaskNotFound,
    UnknownCategory,
    UnknownPrerequisite,
)
from servercfg.kernel.registry import TaskRegistry
from servercfg.kernel.types import Category, CategoryId


def test_lookup_returns_registered_task(make_task):
    registry = TaskRegistry()
    task = make_task("2.3", prerequisite_id=None, category_id="security")
    registry.register(task)

    assert registry.lookup("2.3") == task
    assert registry.contains("2.3")
    assert registry.get("9.9") is None


def test_lookup_unknown_raises_task_not_found():
    registry = TaskRegistry()
    with pytest.raises(TaskNotFound) as exc_info:
        registry.lookup("9.9")
    assert exc_info.value.task_id == "9.9"


def test_duplicate_ids_rejected(make_task):
    registry = TaskRegistry()
    registry.register(make_task("1.1"))
    with pytest.raises(DuplicateTaskId):
        registry.register(make_task("1.1"))

    registry.register_category(Category(CategoryId("base"), "Base"))
    with pytest.raises(DuplicateCategoryId):
        registry.register_category(Category(CategoryId("base"), "Base again"))


def test_validate_rejects_unknown_prerequisite(make_task):
    registry = TaskRegistry()
    registry.register(make_task("1.2", prerequisite_id="1.1"))
    with pytest.raises(UnknownPrerequisite) as exc_info:
        registry.validate()
    assert exc_info.value.prerequisite_id == "1.1"
    assert not registry.is_validated


def test_validate_rejects_unknown_category_when_categories_registered(make_task):
    registry = TaskRegistry()
    registry.register_category(Category(CategoryId("base"), "Base"))
    registry.register(make_task("3.1", category_id="network"))
    with pytest.raises(UnknownCategory):
        registry.validate()


def test_validate_rejects_cycle(make_task):
    registry = TaskRegistry()
    registry.register(make_task("a", prerequisite_id="c"))
    registry.register(make_task("b", prerequisite_id="a"))
    registry.register(make_task("c", prerequisite_id="b"))

    with pytest.raises(CyclicDependency) as exc_info:
        registry.validate()
    chain = exc_info.value.chain
    assert chain[0] == chain[-1]
    assert not registry.is_validated


def test_self_prerequisite_is_a_cycle(make_task):
    registry = TaskRegistry()
    registry.register(make_task("x", prerequisite_id="x"))
    with pytest.raises(CyclicDependency):
        registry.validate()


def test_register_after_validate_reopens_registry(make_task):
    registry = TaskRegistry()
    registry.register(make_task("1.1"))
    registry.validate()
    assert registry.is_validated

    registry.register(make_task("1.2", prerequisite_id="1.1"))
    assert not registry.is_validated


def test_tasks_in_category_follow_explicit_order(make_task):
    registry = TaskRegistry()
    registry.register(make_task("1.10", order=2))
    registry.register(make_task("1.9", order=1))
    registry.register(make_task("1.2", order=2))
    registry.register(make_task("2.1", category_id="security", order=1))

    ids = [task.task_id for task in registry.tasks_in_category("base")]
    assert ids == ["1.9", "1.10", "1.2"]


def test_categories_sorted_by_order():
    registry = TaskRegistry()
    registry.register_category(Category(CategoryId("net"), "Network", order=3))
    registry.register_category(Category(CategoryId("base"), "Base", order=1))
    assert [item.category_id for item in registry.categories()] == ["base", "net"]


def test_prerequisite_chain_nearest_first(make_task):
    registry = TaskRegistry()
    registry.register(make_task("a"))
    registry.register(make_task("b", prerequisite_id="a"))
    registry.register(make_task("c", prerequisite_id="b"))
    registry.validate()

    assert [task.task_id for task in registry.prerequisite_chain("c")] == ["b", "a"]
    assert registry.prerequisite_chain("a") == []
