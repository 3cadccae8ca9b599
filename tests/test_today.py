# tests/test_today.py

from __future__ import annotations

from datetime import datetime

from taskcycle.core.errors import StoreError
from taskcycle.tasks.task_models import GroupOwner, Interval, RecurrenceRule, UserOwner
from taskcycle.tasks.task_store import TaskStore
from taskcycle.tasks.today import deadline_is_today, run_daily_reconciliation

from .fakes import make_task

REFERENCE = datetime(2028, 6, 5, 0, 0)


def _today_ids(store: TaskStore, owner) -> list[int]:
    today_list = store.find_today_list(owner)
    assert today_list is not None
    return [t.id for t in store.find_tasks(lambda t: today_list.id in t.lists)]


def test_deadline_shifted_back_by_estimate() -> None:
    task = make_task(due_date=datetime(2028, 6, 6, 0, 30), estimated_time=60)
    assert deadline_is_today(task, REFERENCE)
    task.estimated_time = None
    assert not deadline_is_today(task, REFERENCE)


def test_reconciliation_builds_today_list(store: TaskStore) -> None:
    user = store.add_user("ana")
    owner = UserOwner(user.id)

    no_due = store.save(make_task("no due date", owner))
    due_today = store.save(make_task("due today", owner, due_date=datetime(2028, 6, 5, 18, 0)))
    due_later = store.save(make_task("due later", owner, due_date=datetime(2028, 6, 9, 18, 0)))
    daily = store.save(make_task("daily", owner, recurrence=RecurrenceRule(Interval.DAILY)))

    report = run_daily_reconciliation(store, store, reference=REFERENCE)

    assert report.users_processed == 1
    assert report.users_failed == []
    assert sorted(_today_ids(store, owner)) == sorted([due_today.id, daily.id])

    assert not store.find_by_id(no_due.id).is_today
    assert not store.find_by_id(due_later.id).is_today
    refreshed = store.find_by_id(daily.id)
    assert refreshed.is_today
    assert refreshed.streak == 0


def test_reconciliation_is_idempotent(store: TaskStore) -> None:
    user = store.add_user("ana")
    owner = UserOwner(user.id)
    store.save(make_task("due today", owner, due_date=datetime(2028, 6, 5, 18, 0)))
    store.save(make_task("daily", owner, recurrence=RecurrenceRule(Interval.DAILY)))

    first = run_daily_reconciliation(store, store, reference=REFERENCE)
    ids_after_first = _today_ids(store, owner)
    second = run_daily_reconciliation(store, store, reference=REFERENCE.replace(hour=12))

    assert first.tasks_saved == 2
    assert second.tasks_saved == 0
    assert _today_ids(store, owner) == ids_after_first


def test_yesterdays_membership_is_removed(store: TaskStore) -> None:
    user = store.add_user("ana")
    owner = UserOwner(user.id)
    task = store.save(make_task("yesterday", owner, due_date=datetime(2028, 6, 4, 18, 0)))

    run_daily_reconciliation(store, store, reference=datetime(2028, 6, 4))
    assert _today_ids(store, owner) == [task.id]

    run_daily_reconciliation(store, store, reference=REFERENCE)
    assert _today_ids(store, owner) == []


def test_group_task_advances_once_for_all_members(store: TaskStore) -> None:
    ana = store.add_user("ana")
    bob = store.add_user("bob")
    group = store.add_group("flat", owner_id=ana.id, member_ids=[bob.id])
    task = store.save(
        make_task(
            "take out trash",
            GroupOwner(group.id),
            recurrence=RecurrenceRule(Interval.DAILY),
            streak=2,
            longest_streak=2,
            is_done=True,
            completed=datetime(2028, 6, 4, 19, 0),
        )
    )

    report = run_daily_reconciliation(store, store, reference=REFERENCE)

    refreshed = store.find_by_id(task.id)
    assert report.users_processed == 2
    assert refreshed.streak == 3
    assert refreshed.repeat_count == 1
    assert task.id in _today_ids(store, UserOwner(ana.id))
    assert task.id in _today_ids(store, UserOwner(bob.id))


class _NoTodayLists:
    def __init__(self, store: TaskStore) -> None:
        self._store = store

    def __getattr__(self, name: str):
        return getattr(self._store, name)

    def find_today_list(self, owner):
        return None


def test_missing_today_list_skips_rebuild_but_keeps_flags(store: TaskStore) -> None:
    user = store.add_user("ana")
    task = store.save(make_task("due today", UserOwner(user.id), due_date=datetime(2028, 6, 5, 18, 0)))

    report = run_daily_reconciliation(store, _NoTodayLists(store), reference=REFERENCE)

    refreshed = store.find_by_id(task.id)
    assert report.users_failed == []
    assert refreshed.is_today
    assert refreshed.lists == []


class _BrokenForUser:
    def __init__(self, store: TaskStore, broken_key: str) -> None:
        self._store = store
        self._broken_key = broken_key

    def __getattr__(self, name: str):
        return getattr(self._store, name)

    def find_tasks_for_owners(self, owners):
        owners = list(owners)
        if any(o.key == self._broken_key for o in owners):
            raise StoreError("disk I/O error")
        return self._store.find_tasks_for_owners(owners)


def test_store_failure_for_one_user_does_not_stop_the_run(store: TaskStore) -> None:
    ana = store.add_user("ana")
    bob = store.add_user("bob")
    bob_task = store.save(make_task("bob's", UserOwner(bob.id), due_date=datetime(2028, 6, 5, 18, 0)))

    report = run_daily_reconciliation(_BrokenForUser(store, f"user:{ana.id}"), store, reference=REFERENCE)

    assert report.users_failed == [ana.id]
    assert report.users_processed == 1
    assert store.find_by_id(bob_task.id).is_today


def test_group_today_list_holds_only_group_tasks(store: TaskStore) -> None:
    ana = store.add_user("ana")
    group = store.add_group("flat", owner_id=ana.id, member_ids=[ana.id])
    chore = store.save(make_task("dishes", GroupOwner(group.id), recurrence=RecurrenceRule(Interval.DAILY)))
    errand = store.save(make_task("post office", UserOwner(ana.id), due_date=datetime(2028, 6, 5, 15, 0)))

    run_daily_reconciliation(store, store, reference=REFERENCE)

    assert _today_ids(store, GroupOwner(group.id)) == [chore.id]
    assert sorted(_today_ids(store, UserOwner(ana.id))) == sorted([chore.id, errand.id])

    run_daily_reconciliation(store, store, reference=datetime(2028, 6, 6))
    assert _today_ids(store, GroupOwner(group.id)) == [chore.id]
    assert _today_ids(store, UserOwner(ana.id)) == [chore.id]
