# tests/test_task_store.py

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import pytest

from taskcycle.core.errors import InvalidInputError
from taskcycle.tasks.task_models import (
    Anchor,
    DynamicSteps,
    GroupOwner,
    Interval,
    MissedDeadline,
    RecurrenceRule,
    Step,
    StepInterval,
    UserOwner,
)
from taskcycle.tasks.task_store import TODAY_LIST_NAME, StoreNotifier, TaskStore

from .fakes import make_task


def test_task_document_survives_a_reload(store: TaskStore, tmp_path: Path) -> None:
    task = make_task(
        "water plants",
        GroupOwner(3),
        due_date=datetime(2028, 6, 5, 18, 0),
        estimated_time=15,
        priority="HIGH",
        recurrence=RecurrenceRule(Interval.MONTHLY, anchor=Anchor.END, until=datetime(2029, 1, 1)),
        streak=4,
        cycle_date=date(2028, 6, 4),
        steps=[Step("fill can", is_done=True), Step("water 12 pots", reps=12)],
        missed_deadlines=[MissedDeadline(datetime(2028, 5, 31), False, 0.0, "missed")],
        dynamic_steps=DynamicSteps(enabled=True, increment=5, interval=StepInterval.PER_WEEK, total_price=1),
    )
    store.save(task)

    reopened = TaskStore(tmp_path / "tasks.sqlite3")
    loaded = reopened.find_by_id(task.id)

    assert loaded is not None
    assert loaded.to_dict() == task.to_dict()
    assert loaded.owner == GroupOwner(3)
    assert loaded.recurrence.anchor == Anchor.END


def test_save_updates_in_place(store: TaskStore) -> None:
    task = store.save(make_task("draft"))
    task.title = "final"
    store.save(task)

    assert store.count_tasks() == 1
    assert store.find_by_id(task.id).title == "final"


def test_empty_title_is_rejected(store: TaskStore) -> None:
    with pytest.raises(InvalidInputError):
        store.save(make_task("   "))


def test_find_tasks_for_owners_filters_by_owner(store: TaskStore) -> None:
    mine = store.save(make_task("mine", UserOwner(1)))
    ours = store.save(make_task("ours", GroupOwner(1)))
    store.save(make_task("theirs", UserOwner(2)))

    found = store.find_tasks_for_owners([UserOwner(1), GroupOwner(1)])

    assert [t.id for t in found] == [mine.id, ours.id]
    assert store.find_tasks_for_owners([]) == []


def test_delete(store: TaskStore) -> None:
    task = store.save(make_task("gone"))
    store.delete_by_id(task.id)
    assert store.find_by_id(task.id) is None


def test_users_and_groups_get_a_today_list(store: TaskStore) -> None:
    ana = store.add_user("ana", currency=3)
    bob = store.add_user("bob")
    group = store.add_group("flat", owner_id=bob.id, member_ids=[ana.id, bob.id])

    assert store.find_today_list(UserOwner(ana.id)).name == TODAY_LIST_NAME
    assert store.find_today_list(GroupOwner(group.id)).owner == GroupOwner(group.id)
    assert store.find_group(group.id).member_ids == [bob.id, ana.id]
    assert [g.id for g in store.find_groups_for_user(ana.id)] == [group.id]
    assert store.find_user(ana.id).currency == 3
    assert [u.username for u in store.find_all_users()] == ["ana", "bob"]


def test_store_notifier_writes_inbox(store: TaskStore) -> None:
    user = store.add_user("ana")

    StoreNotifier(store).notify(user.id, "hello", "dynamic_steps")

    (note,) = store.list_notifications(user.id, unread_only=True)
    assert note.message == "hello"
    assert note.kind == "dynamic_steps"
    assert not note.is_read


def test_find_scheduled_between_uses_the_due_range(store: TaskStore) -> None:
    early = store.save(make_task("early", due_date=datetime(2028, 6, 5, 9, 0)))
    late = store.save(make_task("late", due_date=datetime(2028, 6, 5, 19, 30)))
    store.save(make_task("next day", due_date=datetime(2028, 6, 6, 9, 0)))
    store.save(make_task("daily", due_date=datetime(2028, 6, 5, 10, 0), recurrence=RecurrenceRule(Interval.DAILY)))
    store.save(make_task("undated"))

    found = store.find_scheduled_between(datetime(2028, 6, 5, 9, 0), datetime(2028, 6, 6, 9, 0))

    assert [t.id for t in found] == [early.id, late.id]
