# src/taskcycle/tasks/deadlines.py

from __future__ import annotations

import logging
from datetime import datetime

from ..core.locks import OwnerLocks
from ..core.ports import TaskRepo
from .task_models import MissedDeadline, Task

logger = logging.getLogger(__name__)


def record_missed_deadline(task: Task, now: datetime) -> bool:
    """Append a MissedDeadline for the current due date if it passed and is not recorded yet."""
    due = task.due_date
    if task.is_done or due is None or due >= now:
        return False
    if any(m.missed_due == due for m in task.missed_deadlines):
        return False
    task.missed_deadlines.append(
        MissedDeadline(
            missed_due=due,
            was_started=task.is_started,
            time_spent=task.total_time_spent,
            message=f"Missed deadline on {due.isoformat()}",
        )
    )
    return True


def check_missed_deadlines(
    repo: TaskRepo,
    now: datetime | None = None,
    *,
    locks: OwnerLocks | None = None,
) -> int:
    """
    Record missed deadlines for every open task; returns how many were recorded.

    Each task is re-read under its owner's lock, so a completion that landed after
    the initial scan is never overwritten.
    """
    now = now or datetime.now()
    locks = locks or OwnerLocks()
    open_tasks = repo.find_tasks(lambda t: not t.is_done and t.due_date is not None)
    logger.debug("Checking %d open tasks for missed deadlines", len(open_tasks))

    recorded = 0
    for candidate in open_tasks:
        try:
            keys = [candidate.owner.key] if candidate.owner is not None else []
            with locks.hold(keys):
                task = repo.find_by_id(candidate.id)
                if task is None or not record_missed_deadline(task, now):
                    continue
                repo.save(task)
            recorded += 1
            logger.info("Missed deadline recorded task=%s due=%s", task.id, task.due_date)
        except Exception:
            logger.exception("Missed-deadline check failed task=%s", candidate.id)

    logger.info("Missed-deadline check done recorded=%d", recorded)
    return recorded
