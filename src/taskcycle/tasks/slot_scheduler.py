# src/taskcycle/tasks/slot_scheduler.py

from __future__ import annotations

"""
Greedy day-slot scheduler.

Places tasks, in input order, into the first free gap of a fixed daily working
window, moving to the next day when a day is full. Callers control priority by
sorting the input first (see sorting.sort_tasks).
"""

import logging
from collections.abc import Iterable
from datetime import datetime, time, timedelta

from ..core.errors import InvalidInputError
from ..core.ports import TaskRepo
from .task_models import Task

logger = logging.getLogger(__name__)

WORK_DAY_START = time(9, 0)
WORK_DAY_END = time(20, 0)


def _duration(task: Task) -> timedelta:
    return timedelta(minutes=task.estimated_time or 0)


def _window(day: datetime, start: time, end: time) -> tuple[datetime, datetime]:
    return datetime.combine(day.date(), start), datetime.combine(day.date(), end)


def _occupied(repo: TaskRepo, task: Task, window_start: datetime, window_end: datetime) -> list[Task]:
    """Already-scheduled one-off tasks inside the window, ascending by start."""
    return [t for t in repo.find_scheduled_between(window_start, window_end) if t.id != task.id]


def find_slot(
    existing: Iterable[Task],
    duration: timedelta,
    window_start: datetime,
    window_end: datetime,
) -> datetime | None:
    """First start time in the window where `duration` fits between the existing intervals."""
    cursor = window_start
    for other in existing:
        other_start = other.due_date
        assert other_start is not None
        if other_start - cursor >= duration:
            break
        cursor = max(cursor, other_start + _duration(other))
    if cursor + duration > window_end:
        return None
    return cursor


def schedule_tasks(
    tasks: list[Task],
    max_per_day: int,
    repo: TaskRepo,
    *,
    now: datetime | None = None,
    day_start: time = WORK_DAY_START,
    day_end: time = WORK_DAY_END,
    carry_day_pointer: bool = True,
) -> list[Task]:
    """
    Assign each task a start time (its due_date) and persist it.

    carry_day_pointer: the candidate day is NOT reset between tasks, so later tasks
    keep searching from the day the previous task landed on. The schedule is therefore
    monotonically non-decreasing in day. Passing False restarts every search today.
    """
    if max_per_day < 1:
        raise InvalidInputError(f"max_per_day must be >= 1, got {max_per_day}")

    now = now or datetime.now()
    window_length = datetime.combine(now.date(), day_end) - datetime.combine(now.date(), day_start)
    if window_length <= timedelta(0):
        raise InvalidInputError("working window end must be after its start")
    for task in tasks:
        if _duration(task) > window_length:
            raise InvalidInputError(
                f"task {task.id} needs {task.estimated_time} minutes, longer than the working window"
            )

    scheduled: list[Task] = []
    current_day = now

    for task in tasks:
        if not carry_day_pointer:
            current_day = now
        duration = _duration(task)

        while True:
            window_start, window_end = _window(current_day, day_start, day_end)
            existing = _occupied(repo, task, window_start, window_end)

            start = None
            if len(existing) < max_per_day:
                start = find_slot(existing, duration, window_start, window_end)

            if start is not None:
                break
            current_day = current_day + timedelta(days=1)

        task.due_date = start
        task.is_today = start.date() == now.date()
        repo.save(task)
        scheduled.append(task)
        logger.info("Scheduled task=%s start=%s duration=%s", task.id, start, duration)

    return scheduled
