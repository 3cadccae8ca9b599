# src/taskcycle/tasks/recurrence.py

from __future__ import annotations

"""
Recurrence rules and the per-cycle streak/reset state machine.

is_occurrence_day() is a pure predicate. advance_cycle() mutates the task in place
and is the only place where recurrence state (streak, cycle archive) changes.
"""

import calendar
import logging
from datetime import datetime
from enum import Enum

from .task_models import WEEKDAYS, Anchor, CompletedCycle, Interval, RecurrenceRule, Task

logger = logging.getLogger(__name__)


class CycleOutcome(str, Enum):
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    NOT_STARTED = "not_started"
    ALREADY_ADVANCED = "already_advanced"


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def is_rule_active(rule: RecurrenceRule, reference: datetime, repeat_count: int = 0) -> bool:
    """A rule stops applying after `until` and once `max_repeats` cycles were completed."""
    if rule.until is not None and start_of_day(reference) > rule.until:
        return False
    if rule.max_repeats is not None and repeat_count >= rule.max_repeats:
        return False
    return True


def _matches_interval(rule: RecurrenceRule, reference: datetime) -> bool:
    if rule.interval == Interval.DAILY:
        return True
    if rule.interval == Interval.WEEKLY:
        return WEEKDAYS[reference.weekday()] in rule.days
    if rule.interval == Interval.MONTHLY:
        if rule.anchor == Anchor.START:
            return reference.day == 1
        if rule.anchor == Anchor.END:
            return reference.day == calendar.monthrange(reference.year, reference.month)[1]
        return False
    if rule.interval == Interval.YEARLY:
        if rule.anchor == Anchor.START:
            return reference.month == 1 and reference.day == 1
        if rule.anchor == Anchor.END:
            return reference.month == 12 and reference.day == 31
        return False
    return False


def is_occurrence_day(rule: RecurrenceRule, reference: datetime, repeat_count: int = 0) -> bool:
    if not is_rule_active(rule, reference, repeat_count):
        return False
    return _matches_interval(rule, reference)


def advance_cycle(task: Task, now: datetime) -> CycleOutcome:
    """
    Close the task's open cycle on an occurrence-day boundary.

    Runs at most once per calendar day (guarded by task.cycle_date), so a rerun
    of the daily job, or a group task seen once per member, does not reset twice.
    Every outcome leaves the task marked as today.
    """
    today = now.date()
    task.is_today = True

    if task.cycle_date == today:
        return CycleOutcome.ALREADY_ADVANCED

    if task.completed is not None:
        task.completed_cycles.append(
            CompletedCycle(started=task.started, completed=task.completed, time_spent=task.total_time_spent)
        )
        task.streak = 1 if task.streak is None else task.streak + 1
        task.longest_streak = max(task.longest_streak, task.streak)
        task.started = None
        task.completed = None
        task.is_done = False
        task.is_started = False
        task.total_time_spent = 0.0
        outcome = CycleOutcome.COMPLETED
    elif task.started is not None:
        task.streak = 0
        task.started = None
        task.is_started = False
        task.total_time_spent = 0.0
        outcome = CycleOutcome.ABANDONED
    else:
        task.streak = 0
        outcome = CycleOutcome.NOT_STARTED

    task.created = now
    task.cycle_date = today
    logger.debug("Cycle advanced task=%s outcome=%s streak=%s", task.id, outcome.value, task.streak)
    return outcome
