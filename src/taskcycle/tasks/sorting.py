# src/taskcycle/tasks/sorting.py

from __future__ import annotations

import random
from collections.abc import Iterable

from ..core.errors import InvalidInputError
from .task_models import Task

PRIORITY_ORDINALS = {
    "VERY HIGH": 5,
    "HIGH": 4,
    "NORMAL": 3,
    "LOW": 2,
    "VERY LOW": 1,
    "": 0,
}

DIFFICULTY_ORDINALS = {
    "VERY HARD": 5,
    "HARD": 4,
    "NORMAL": 3,
    "EASY": 2,
    "VERY EASY": 1,
    "": 0,
}

SORT_ATTRIBUTES = ("priority", "difficulty", "estimatedTime", "urgent", "random")
SORT_DIRECTIONS = ("descending", "ascending")


def _estimated_key(task: Task) -> tuple[int, int]:
    # Missing estimates go last.
    if task.estimated_time is None:
        return (1, 0)
    return (0, task.estimated_time)


def sort_tasks(
    tasks: Iterable[Task],
    attribute: str,
    direction: str = "descending",
    *,
    rng: random.Random | None = None,
) -> list[Task]:
    """
    Return a new list ordered by `attribute`.

    "descending" is the natural order of each attribute (highest priority/difficulty first,
    shortest estimate first, urgent first). "ascending" reverses it, except for "urgent",
    whose order is fixed.
    """
    if direction not in SORT_DIRECTIONS:
        raise InvalidInputError(f"Invalid sort direction: {direction!r}")

    items = list(tasks)

    if attribute == "priority":
        ordered = sorted(items, key=lambda t: PRIORITY_ORDINALS.get(t.priority, 0), reverse=True)
    elif attribute == "difficulty":
        ordered = sorted(items, key=lambda t: DIFFICULTY_ORDINALS.get(t.difficulty, 0), reverse=True)
    elif attribute == "estimatedTime":
        ordered = sorted(items, key=_estimated_key)
    elif attribute == "urgent":
        return sorted(items, key=lambda t: not t.is_urgent)
    elif attribute == "random":
        ordered = items
        (rng or random).shuffle(ordered)
    else:
        raise InvalidInputError(f"Invalid attribute for sorting: {attribute!r}")

    if direction == "ascending":
        ordered.reverse()
    return ordered
