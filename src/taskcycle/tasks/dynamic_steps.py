# src/taskcycle/tasks/dynamic_steps.py

from __future__ import annotations

"""
Dynamic steps: automatic progression of a recurring task's step reps.

Each time the configured interval elapses, every step's reps grow by `increment`
percent and the number in the step name is rewritten ("Do 10 pushups" -> "Do 11 pushups").
Each progression costs `total_price` currency, paid by the task owner (the group's
owner for group tasks). If the payer cannot afford it, progression is switched off
and the payer is notified.
"""

import logging
import math
import re
from datetime import datetime, timedelta

from ..core.locks import OwnerLocks
from ..core.ports import Notifier, OwnerRepo, TaskRepo
from .recurrence import is_occurrence_day
from .task_models import GroupOwner, StepInterval, Task, User, UserOwner

logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS_MESSAGE = "Dynamic steps were disabled due to insufficient funds"

INTERVAL_PERIODS = {
    StepInterval.PER_DAY: timedelta(days=1),
    StepInterval.PER_WEEK: timedelta(days=7),
    StepInterval.PER_MONTH: timedelta(days=30),
    StepInterval.PER_YEAR: timedelta(days=365),
}

NUMBER_WORDS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
    "thirty": 30, "forty": 40, "fifty": 50, "sixty": 60, "seventy": 70,
    "eighty": 80, "ninety": 90, "hundred": 100,
}  # fmt: skip

_NUMBER_RE = re.compile(
    r"\d+(?:\.\d+)?|\b(?:" + "|".join(NUMBER_WORDS) + r")\b",
    re.IGNORECASE,
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rewrite_step_name(name: str, reps: float) -> str:
    """Replace the first number (digits or an English number word) in `name` with `reps`."""
    return _NUMBER_RE.sub(str(round_half_up(reps)), name, count=1)


def is_progression_due(task: Task, now: datetime) -> bool:
    ds = task.dynamic_steps
    if ds is None or not ds.enabled or task.recurrence is None:
        return False

    if ds.interval == StepInterval.PER_REPEAT:
        if ds.last_applied is not None and ds.last_applied.date() == now.date():
            return False
        return is_occurrence_day(task.recurrence, now, task.repeat_count)

    since = ds.last_applied or task.created
    return now - since >= INTERVAL_PERIODS[ds.interval]


def _payer(task: Task, users: OwnerRepo) -> User | None:
    owner = task.owner
    if isinstance(owner, UserOwner):
        return users.find_user(owner.id)
    if isinstance(owner, GroupOwner):
        group = users.find_group(owner.id)
        return users.find_user(group.owner_id) if group else None
    return None


def progress_steps(task: Task, now: datetime) -> None:
    ds = task.dynamic_steps
    assert ds is not None
    factor = 1 + ds.increment / 100
    for step in task.steps:
        old = step.reps or 0
        if old == 0:
            continue
        step.reps = old * factor
        step.name = rewrite_step_name(step.name, step.reps)
    ds.last_applied = now


def apply_dynamic_steps(task: Task, users: OwnerRepo, notifier: Notifier, now: datetime) -> bool:
    """Progress one task if due. Returns True when the task changed and must be saved."""
    if not is_progression_due(task, now):
        return False

    ds = task.dynamic_steps
    assert ds is not None

    payer = _payer(task, users)
    if payer is None:
        logger.warning("Dynamic steps skipped: no payer for task=%s owner=%s", task.id, task.owner)
        return False

    if payer.currency < ds.total_price:
        ds.enabled = False
        notifier.notify(payer.id, f"{INSUFFICIENT_FUNDS_MESSAGE} for '{task.title}'.", "dynamic_steps")
        logger.info("Dynamic steps disabled task=%s payer=%s (funds=%s)", task.id, payer.id, payer.currency)
        return True

    if ds.total_price > 0:
        payer.currency -= ds.total_price
        users.save_user(payer)

    progress_steps(task, now)
    logger.info("Dynamic steps progressed task=%s payer=%s price=%s", task.id, payer.id, ds.total_price)
    return True


def _lock_keys(task: Task, users: OwnerRepo) -> list[str]:
    """The task's owner plus the paying user, whose balance is charged."""
    keys = [task.owner.key] if task.owner is not None else []
    payer = _payer(task, users)
    if payer is not None:
        keys.append(UserOwner(payer.id).key)
    return keys


def update_dynamic_steps(
    tasks: TaskRepo,
    users: OwnerRepo,
    notifier: Notifier,
    now: datetime | None = None,
    *,
    locks: OwnerLocks | None = None,
) -> int:
    now = now or datetime.now()
    locks = locks or OwnerLocks()
    candidates = tasks.find_tasks(
        lambda t: t.repeatable and t.owner is not None and t.dynamic_steps is not None and t.dynamic_steps.enabled
    )

    changed = 0
    for candidate in candidates:
        try:
            with locks.hold(_lock_keys(candidate, users)):
                # Re-read under the lock; the scan above may be stale by now.
                task = tasks.find_by_id(candidate.id)
                if task is None or not apply_dynamic_steps(task, users, notifier, now):
                    continue
                tasks.save(task)
            changed += 1
        except Exception:
            logger.exception("Dynamic steps update failed task=%s", candidate.id)

    logger.info("Dynamic steps update done candidates=%d changed=%d", len(candidates), changed)
    return changed
