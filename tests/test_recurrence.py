# tests/test_recurrence.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from taskcycle.tasks.recurrence import CycleOutcome, advance_cycle, is_occurrence_day, is_rule_active
from taskcycle.tasks.task_models import Anchor, CompletedCycle, Interval, RecurrenceRule

from .fakes import make_task

MONDAY = datetime(2028, 6, 5, 10, 0)


def test_daily_rule_occurs_every_day() -> None:
    rule = RecurrenceRule(Interval.DAILY, until=datetime(2030, 1, 1))
    for day in (1, 2, 3, 15, 30):
        assert is_occurrence_day(rule, datetime(2028, 6, day, 7, 0))


def test_weekly_rule_matches_weekday_names() -> None:
    rule = RecurrenceRule(Interval.WEEKLY, days=["Monday", "Thursday"])
    assert is_occurrence_day(rule, MONDAY)
    assert not is_occurrence_day(rule, datetime(2028, 6, 6))
    assert is_occurrence_day(rule, datetime(2028, 6, 8))


def test_weekly_rule_rejects_unknown_weekday() -> None:
    with pytest.raises(ValueError):
        RecurrenceRule(Interval.WEEKLY, days=["Funday"])


def test_monthly_anchors() -> None:
    start = RecurrenceRule(Interval.MONTHLY, anchor=Anchor.START)
    end = RecurrenceRule(Interval.MONTHLY, anchor=Anchor.END)

    assert is_occurrence_day(start, datetime(2028, 6, 1))
    assert not is_occurrence_day(start, datetime(2028, 6, 2))
    assert is_occurrence_day(end, datetime(2028, 2, 29))
    assert not is_occurrence_day(end, datetime(2028, 2, 28))


def test_yearly_anchors() -> None:
    start = RecurrenceRule(Interval.YEARLY, anchor=Anchor.START)
    end = RecurrenceRule(Interval.YEARLY, anchor=Anchor.END)

    assert is_occurrence_day(start, datetime(2028, 1, 1))
    assert not is_occurrence_day(start, datetime(2028, 2, 1))
    assert is_occurrence_day(end, datetime(2028, 12, 31))
    assert not is_occurrence_day(end, datetime(2028, 12, 30))


def test_until_compares_at_start_of_day() -> None:
    rule = RecurrenceRule(Interval.DAILY, until=datetime(2028, 6, 4))
    assert is_rule_active(rule, datetime(2028, 6, 4, 23, 0))
    assert not is_occurrence_day(rule, MONDAY)


def test_max_repeats_deactivates_rule() -> None:
    rule = RecurrenceRule(Interval.DAILY, max_repeats=3)
    assert is_occurrence_day(rule, MONDAY, repeat_count=2)
    assert not is_occurrence_day(rule, MONDAY, repeat_count=3)


def test_completed_cycle_is_archived_and_streak_starts_at_one() -> None:
    task = make_task(
        recurrence=RecurrenceRule(Interval.DAILY),
        is_started=True,
        started=datetime(2028, 6, 4, 9, 0),
        is_done=True,
        completed=datetime(2028, 6, 4, 9, 30),
        total_time_spent=1800.0,
    )

    outcome = advance_cycle(task, MONDAY)

    assert outcome == CycleOutcome.COMPLETED
    assert task.streak == 1
    assert task.longest_streak == 1
    assert task.completed_cycles == [
        CompletedCycle(started=datetime(2028, 6, 4, 9, 0), completed=datetime(2028, 6, 4, 9, 30), time_spent=1800.0)
    ]
    assert task.repeat_count == 1
    assert not task.is_done and not task.is_started
    assert task.started is None and task.completed is None
    assert task.total_time_spent == 0
    assert task.created == MONDAY
    assert task.cycle_date == date(2028, 6, 5)
    assert task.is_today


def test_completed_cycle_extends_existing_streak_and_keeps_longest() -> None:
    task = make_task(
        recurrence=RecurrenceRule(Interval.DAILY),
        streak=4,
        longest_streak=7,
        is_done=True,
        completed=datetime(2028, 6, 4, 20, 0),
    )

    advance_cycle(task, MONDAY)

    assert task.streak == 5
    assert task.longest_streak == 7


def test_abandoned_cycle_resets_streak_and_progress() -> None:
    task = make_task(
        recurrence=RecurrenceRule(Interval.DAILY),
        streak=3,
        is_started=True,
        started=datetime(2028, 6, 4, 9, 0),
        total_time_spent=600.0,
    )

    assert advance_cycle(task, MONDAY) == CycleOutcome.ABANDONED
    assert task.streak == 0
    assert not task.is_started and task.started is None
    assert task.total_time_spent == 0
    assert task.completed_cycles == []


def test_never_started_cycle_resets_streak() -> None:
    task = make_task(recurrence=RecurrenceRule(Interval.DAILY), streak=2)

    assert advance_cycle(task, MONDAY) == CycleOutcome.NOT_STARTED
    assert task.streak == 0
    assert task.created == MONDAY


def test_advance_runs_once_per_day() -> None:
    task = make_task(recurrence=RecurrenceRule(Interval.DAILY), is_done=True, completed=datetime(2028, 6, 4, 9, 0))

    advance_cycle(task, MONDAY)
    assert advance_cycle(task, MONDAY.replace(hour=18)) == CycleOutcome.ALREADY_ADVANCED
    assert task.streak == 1
    assert task.repeat_count == 1


def test_clearing_recurrence_clears_cycle_state() -> None:
    task = make_task(recurrence=RecurrenceRule(Interval.DAILY), is_done=True, completed=datetime(2028, 6, 4, 9, 0))
    advance_cycle(task, MONDAY)

    task.set_recurrence(None)

    assert not task.repeatable
    assert task.streak is None
    assert task.longest_streak == 0
    assert task.completed_cycles == []
    assert task.cycle_date is None
