from __future__ import annotations

from hopsearch.exceptions import PlanningError
from hopsearch.models.plan import Task


def order_by_dependencies(tasks: list[Task]) -> list[Task]:
    """Return tasks so every task follows the tasks it depends on.

    Among tasks whose dependencies are satisfied, the planner's order wins, so
    a plan that is already well ordered comes back unchanged. Cycles and
    references to unknown task ids raise ``PlanningError``.
    """
    by_id: dict[str, Task] = {}
    for task in tasks:
        if task.id in by_id:
            raise PlanningError(f"Duplicate task id in plan: {task.id}")
        by_id[task.id] = task

    for task in tasks:
        unknown = [dep for dep in task.depends_on if dep not in by_id]
        if unknown:
            raise PlanningError(f"Task {task.id} depends on unknown tasks: {', '.join(unknown)}")

    ordered: list[Task] = []
    placed: set[str] = set()
    pending = list(tasks)
    while pending:
        ready = next(
            (task for task in pending if all(dep in placed for dep in task.depends_on)),
            None,
        )
        if ready is None:
            cycle = ", ".join(task.id for task in pending)
            raise PlanningError(f"Dependency cycle between tasks: {cycle}")
        ordered.append(ready)
        placed.add(ready.id)
        pending.remove(ready)
    return ordered
