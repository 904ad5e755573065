from __future__ import annotations

import pytest

from hopsearch.exceptions import PlanningError
from hopsearch.models.plan import Task
from hopsearch.services.task_scheduler import order_by_dependencies


def _task(task_id: str, *deps: str) -> Task:
    return Task(id=task_id, description=task_id, search_query=task_id, depends_on=list(deps))


def test_well_ordered_plan_is_unchanged():
    tasks = [_task("task_0"), _task("task_1"), _task("task_2", "task_0", "task_1")]

    assert order_by_dependencies(tasks) == tasks


def test_dependencies_move_ahead_of_dependents():
    tasks = [_task("task_0", "task_2"), _task("task_1"), _task("task_2", "task_1")]

    ordered = order_by_dependencies(tasks)

    assert [t.id for t in ordered] == ["task_1", "task_2", "task_0"]


def test_independent_tasks_keep_plan_order():
    tasks = [_task("task_0", "task_3"), _task("task_1"), _task("task_2"), _task("task_3")]

    ordered = order_by_dependencies(tasks)

    assert [t.id for t in ordered] == ["task_1", "task_2", "task_3", "task_0"]


def test_cycle_raises():
    with pytest.raises(PlanningError, match="Dependency cycle"):
        order_by_dependencies([_task("task_0", "task_1"), _task("task_1", "task_0")])


def test_unknown_dependency_raises():
    with pytest.raises(PlanningError, match="unknown tasks: task_9"):
        order_by_dependencies([_task("task_0", "task_9")])


def test_duplicate_ids_raise():
    with pytest.raises(PlanningError, match="Duplicate task id"):
        order_by_dependencies([_task("task_0"), _task("task_0")])
