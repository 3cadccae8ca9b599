# tests/test_dynamic_steps.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from taskcycle.tasks.dynamic_steps import (
    INSUFFICIENT_FUNDS_MESSAGE,
    is_progression_due,
    rewrite_step_name,
    update_dynamic_steps,
)
from taskcycle.tasks.task_models import (
    DynamicSteps,
    GroupOwner,
    Interval,
    RecurrenceRule,
    Step,
    StepInterval,
    UserOwner,
)
from taskcycle.tasks.task_store import TaskStore

from .fakes import RecordingNotifier, make_task

NOW = datetime(2028, 6, 5, 0, 0)


def _pushups(owner, *, price: float = 2.0, interval: StepInterval = StepInterval.PER_DAY, last_applied=None):
    return make_task(
        "workout",
        owner,
        recurrence=RecurrenceRule(Interval.WEEKLY, days=["Monday"]),
        steps=[Step("Do ten pushups", reps=10), Step("Stretch", reps=0)],
        dynamic_steps=DynamicSteps(
            enabled=True,
            increment=10,
            interval=interval,
            total_price=price,
            last_applied=last_applied if last_applied is not None else NOW - timedelta(days=1),
        ),
    )


@pytest.mark.parametrize(
    ("name", "reps", "expected"),
    [
        ("Do ten pushups", 11, "Do 11 pushups"),
        ("Run 5 km", 5.5, "Run 6 km"),
        ("Do 5 sets of 10", 6.25, "Do 6 sets of 10"),
        ("Stretch", 3, "Stretch"),
    ],
)
def test_rewrite_step_name(name: str, reps: float, expected: str) -> None:
    assert rewrite_step_name(name, reps) == expected


def test_unknown_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        DynamicSteps(enabled=True, interval="per decade")


def test_progression_charges_owner_and_grows_reps(store: TaskStore) -> None:
    user = store.add_user("ana", currency=10)
    task = store.save(_pushups(UserOwner(user.id)))
    notifier = RecordingNotifier()

    assert update_dynamic_steps(store, store, notifier, NOW) == 1

    refreshed = store.find_by_id(task.id)
    assert refreshed.steps[0].reps == pytest.approx(11)
    assert refreshed.steps[0].name == "Do 11 pushups"
    assert refreshed.steps[1].reps == 0
    assert refreshed.steps[1].name == "Stretch"
    assert refreshed.dynamic_steps.last_applied == NOW
    assert store.find_user(user.id).currency == 8
    assert notifier.sent == []


def test_not_due_yet_is_left_alone(store: TaskStore) -> None:
    user = store.add_user("ana", currency=10)
    store.save(_pushups(UserOwner(user.id), last_applied=NOW - timedelta(hours=2)))

    assert update_dynamic_steps(store, store, RecordingNotifier(), NOW) == 0
    assert store.find_user(user.id).currency == 10


def test_insufficient_funds_disables_and_notifies(store: TaskStore) -> None:
    user = store.add_user("ana", currency=1)
    task = store.save(_pushups(UserOwner(user.id)))
    notifier = RecordingNotifier()

    update_dynamic_steps(store, store, notifier, NOW)

    refreshed = store.find_by_id(task.id)
    assert not refreshed.dynamic_steps.enabled
    assert refreshed.steps[0].reps == 10
    assert refreshed.steps[0].name == "Do ten pushups"
    assert len(notifier.sent) == 1
    assert notifier.sent[0].user_id == user.id
    assert INSUFFICIENT_FUNDS_MESSAGE in notifier.sent[0].message


def test_group_task_is_paid_by_group_owner(store: TaskStore) -> None:
    owner = store.add_user("ana", currency=5)
    member = store.add_user("bob", currency=100)
    group = store.add_group("gym", owner_id=owner.id, member_ids=[member.id])
    store.save(_pushups(GroupOwner(group.id), price=5))

    assert update_dynamic_steps(store, store, RecordingNotifier(), NOW) == 1
    assert store.find_user(owner.id).currency == 0
    assert store.find_user(member.id).currency == 100


def test_per_repeat_follows_occurrence_days() -> None:
    monday = datetime(2028, 6, 5, 0, 0)
    task = _pushups(UserOwner(1), interval=StepInterval.PER_REPEAT, last_applied=monday - timedelta(days=7))

    assert is_progression_due(task, monday)
    assert not is_progression_due(task, monday + timedelta(days=1))

    task.dynamic_steps.last_applied = monday
    assert not is_progression_due(task, monday + timedelta(hours=3))


def test_one_off_tasks_are_never_progressed(store: TaskStore) -> None:
    user = store.add_user("ana", currency=10)
    task = _pushups(UserOwner(user.id))
    task.set_recurrence(None)
    store.save(task)

    assert update_dynamic_steps(store, store, RecordingNotifier(), NOW) == 0


class _CompletedAfterScan:
    """TaskRepo whose find_tasks result goes stale: every listed task is completed right after the scan."""

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    def __getattr__(self, name: str):
        return getattr(self._store, name)

    def find_tasks(self, predicate=None):
        found = self._store.find_tasks(predicate)
        for task in found:
            fresh = self._store.find_by_id(task.id)
            fresh.is_done = True
            fresh.completed = NOW
            self._store.save(fresh)
        return found


def test_completion_after_the_scan_survives_progression(store: TaskStore) -> None:
    user = store.add_user("ana", currency=10)
    task = store.save(_pushups(UserOwner(user.id)))

    assert update_dynamic_steps(_CompletedAfterScan(store), store, RecordingNotifier(), NOW) == 1

    stored = store.find_by_id(task.id)
    assert stored.is_done
    assert stored.steps[0].name == "Do 11 pushups"
