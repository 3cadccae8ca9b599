# src/taskcycle/tasks/task_api.py

from __future__ import annotations

"""
Entry points exposed to the surrounding system (console commands, daily trigger).

Every function takes the AppState built in bootstrap and works through
state.store (TaskRepo + OwnerRepo), state.notifier and state.awarder.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time

from ..core.errors import InvalidInputError, OwnerNotFoundError, StepNotFoundError, TaskNotFoundError
from ..core.state import AppState
from . import links, scoring, slot_scheduler, sorting, today
from .deadlines import check_missed_deadlines
from .dynamic_steps import update_dynamic_steps
from .task_models import GroupOwner, Task, UserOwner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DailyJobsResult:
    reconciliation: today.ReconciliationReport
    missed_deadlines: int
    dynamic_steps: int


def _load(state: AppState, task_id: int) -> Task:
    task = state.store.find_by_id(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def _owner_keys(tasks: Iterable[Task]) -> list[str]:
    return [t.owner.key for t in tasks if t.owner is not None]


def _check_owner(state: AppState, task: Task) -> None:
    owner = task.owner
    if isinstance(owner, UserOwner) and state.store.find_user(owner.id) is None:
        raise OwnerNotFoundError(owner)
    if isinstance(owner, GroupOwner) and state.store.find_group(owner.id) is None:
        raise OwnerNotFoundError(owner)


# ---- daily jobs ----


def run_daily_reconciliation(state: AppState, now: datetime | None = None) -> today.ReconciliationReport:
    return today.run_daily_reconciliation(
        state.store,
        state.store,
        reference=now or datetime.now(),
        locks=state.locks,
    )


def run_daily_jobs(state: AppState, now: datetime | None = None) -> DailyJobsResult:
    """Reconciliation first, then missed deadlines, then dynamic steps."""
    now = now or datetime.now()
    report = run_daily_reconciliation(state, now)
    missed = check_missed_deadlines(state.store, now, locks=state.locks)
    progressed = update_dynamic_steps(state.store, state.store, state.notifier, now, locks=state.locks)
    return DailyJobsResult(reconciliation=report, missed_deadlines=missed, dynamic_steps=progressed)


# ---- on-demand ----


def schedule_tasks(
    state: AppState,
    task_ids: Iterable[int],
    max_per_day: int | None = None,
    *,
    now: datetime | None = None,
    carry_day_pointer: bool = True,
) -> list[Task]:
    tasks = [_load(state, int(i)) for i in task_ids]
    settings = state.settings
    if max_per_day is None:
        max_per_day = int(getattr(settings, "default_max_per_day", 5))

    with state.locks.hold(_owner_keys(tasks)):
        return slot_scheduler.schedule_tasks(
            tasks,
            max_per_day,
            state.store,
            now=now,
            day_start=time(int(getattr(settings, "work_day_start_hour", 9))),
            day_end=time(int(getattr(settings, "work_day_end_hour", 20))),
            carry_day_pointer=carry_day_pointer,
        )


def sort_tasks(
    state: AppState,
    task_ids: Iterable[int],
    attribute: str,
    direction: str = "descending",
) -> list[Task]:
    tasks = [_load(state, int(i)) for i in task_ids]
    return sorting.sort_tasks(tasks, attribute, direction)


def link_tasks(state: AppState, task_id: int, before_ids: Iterable[int], after_ids: Iterable[int]) -> Task:
    return links.link_tasks(state.store, task_id, before_ids, after_ids)


def unlink_tasks(state: AppState, task_id: int) -> Task:
    return links.unlink_tasks(state.store, task_id)


def reconcile_task_links(
    state: AppState,
    task_id: int,
    new_before: Iterable[int],
    new_after: Iterable[int],
) -> Task:
    return links.reconcile_task_links(state.store, task_id, new_before, new_after)


def on_task_completed(state: AppState, task: Task) -> float:
    return scoring.on_task_completed(task, state.store, state.awarder)


# ---- task lifecycle ----


def create_task(
    state: AppState,
    task: Task,
    *,
    before_ids: Iterable[int] = (),
    after_ids: Iterable[int] = (),
) -> Task:
    """Persist a new task and link it to its neighbours."""
    _check_owner(state, task)
    # Edges are only written through the link manager.
    task.id = None
    task.tasks_before = []
    task.tasks_after = []
    state.store.save(task)
    logger.info("Task created id=%s owner=%s", task.id, task.owner)

    before_ids = list(before_ids)
    after_ids = list(after_ids)
    if before_ids or after_ids:
        assert task.id is not None
        task = links.link_tasks(state.store, task.id, before_ids, after_ids)
    return task


def _save_with_completion_hook(state: AppState, task: Task, was_done: bool, now: datetime) -> float | None:
    just_done = task.is_done and not was_done
    if just_done and task.completed is None:
        task.completed = now
    if not task.is_done and was_done:
        task.completed = None

    state.store.save(task)

    if just_done:
        return on_task_completed(state, task)
    return None


def _keep_engine_fields(task: Task, prior: Task) -> None:
    """Links, today membership and the recurrence cycle are only changed by the engine."""
    task.tasks_before = list(prior.tasks_before)
    task.tasks_after = list(prior.tasks_after)
    task.is_today = prior.is_today
    task.lists = list(prior.lists)
    task.streak = prior.streak
    task.longest_streak = prior.longest_streak
    task.completed_cycles = list(prior.completed_cycles)
    task.cycle_date = prior.cycle_date
    if task.recurrence is None:
        task.set_recurrence(None)


def update_task(
    state: AppState,
    task: Task,
    *,
    before_ids: Iterable[int] | None = None,
    after_ids: Iterable[int] | None = None,
    now: datetime | None = None,
) -> Task:
    """
    Store-update pathway: persists an edited task and fires the completion hook
    when is_done flips from false to true.

    Links, today membership and recurrence state are taken from the stored copy,
    whatever the caller's object holds. Link edits go through reconcile_task_links
    when before_ids/after_ids are given.
    """
    if task.id is None:
        raise InvalidInputError("task has no id; use create_task for new tasks")
    now = now or datetime.now()

    with state.locks.hold(_owner_keys([task])):
        prior = _load(state, task.id)
        _keep_engine_fields(task, prior)
        _save_with_completion_hook(state, task, prior.is_done, now)

    if before_ids is not None or after_ids is not None:
        task = links.reconcile_task_links(
            state.store,
            task.id,
            before_ids if before_ids is not None else task.tasks_before,
            after_ids if after_ids is not None else task.tasks_after,
        )
    return task


def start_task(state: AppState, task_id: int, now: datetime | None = None) -> Task:
    now = now or datetime.now()
    owner_task = _load(state, task_id)
    with state.locks.hold(_owner_keys([owner_task])):
        task = _load(state, task_id)
        if not task.is_started:
            task.is_started = True
            task.started = now
            state.store.save(task)
            logger.info("Task started id=%s", task_id)
    return task


def cancel_task(state: AppState, task_id: int) -> Task:
    """Undo start_task: clears the started flag and timestamp."""
    owner_task = _load(state, task_id)
    with state.locks.hold(_owner_keys([owner_task])):
        task = _load(state, task_id)
        if task.is_started:
            task.is_started = False
            task.started = None
            state.store.save(task)
            logger.info("Task start cancelled id=%s", task_id)
    return task


def set_step_done(state: AppState, task_id: int, step_index: int, done: bool = True) -> Task:
    """Mark one step (0-based index) done or not done. Done steps add to the completion score."""
    owner_task = _load(state, task_id)
    with state.locks.hold(_owner_keys([owner_task])):
        task = _load(state, task_id)
        if not 0 <= step_index < len(task.steps):
            raise StepNotFoundError(task_id, step_index)
        step = task.steps[step_index]
        if step.is_done != done:
            step.is_done = done
            state.store.save(task)
            logger.info("Step %s of task=%s done=%s", step_index, task_id, done)
    return task


def complete_task(
    state: AppState,
    task_id: int,
    now: datetime | None = None,
    time_spent: float | None = None,
) -> tuple[Task, float]:
    """
    Mark a task done and credit its owner.

    time_spent (seconds) is added to the cycle total; without it, the time since
    start is used when nothing was tracked yet. Returns (task, score); the score is 0
    when the task was already done.
    """
    now = now or datetime.now()
    owner_task = _load(state, task_id)

    with state.locks.hold(_owner_keys([owner_task])):
        task = _load(state, task_id)
        if task.is_done:
            return task, 0.0

        if time_spent is not None:
            task.total_time_spent += max(0.0, float(time_spent))
        elif task.started is not None and task.total_time_spent == 0:
            task.total_time_spent = max(0.0, (now - task.started).total_seconds())

        task.is_done = True
        task.completed = now
        score = _save_with_completion_hook(state, task, False, now) or 0.0

    logger.info("Task completed id=%s score=%.2f", task_id, score)
    return task, score


def delete_task(state: AppState, task_id: int) -> None:
    task = _load(state, task_id)
    with state.locks.hold(_owner_keys([task])):
        links.unlink_tasks(state.store, task_id)
        state.store.delete_by_id(task_id)
    logger.info("Task deleted id=%s", task_id)
