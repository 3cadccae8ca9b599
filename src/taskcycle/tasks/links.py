# src/taskcycle/tasks/links.py

from __future__ import annotations

"""
Before/after dependency links between tasks.

Edges are stored on both ends: if A lists B in tasks_after, B lists A in tasks_before.
No cycle detection is done; links are ordering metadata only.
Multi-record updates are not transactional: a failed save midway can leave one
asymmetric edge behind.
"""

import logging
from collections.abc import Iterable

from ..core.errors import TaskNotFoundError
from ..core.ports import TaskRepo
from .task_models import Task

logger = logging.getLogger(__name__)


def _dedupe(ids: Iterable[int]) -> list[int]:
    out: list[int] = []
    for raw in ids:
        i = int(raw)
        if i not in out:
            out.append(i)
    return out


def _load(repo: TaskRepo, task_id: int) -> Task:
    task = repo.find_by_id(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def link_tasks(repo: TaskRepo, task_id: int, before_ids: Iterable[int], after_ids: Iterable[int]) -> Task:
    """Add edges task<-before and task->after on both ends. Missing neighbours are skipped."""
    task = _load(repo, task_id)
    changed = False

    for before_id in _dedupe(before_ids):
        if before_id == task_id:
            logger.warning("Ignoring self-link for task %s", task_id)
            continue
        before_task = repo.find_by_id(before_id)
        if before_task is None:
            logger.warning("Cannot link %s after missing task %s", task_id, before_id)
            continue
        if task_id not in before_task.tasks_after:
            before_task.tasks_after.append(task_id)
            repo.save(before_task)
            logger.info("Linked %s to tasks_after of %s", task_id, before_id)
        if before_id not in task.tasks_before:
            task.tasks_before.append(before_id)
            changed = True

    for after_id in _dedupe(after_ids):
        if after_id == task_id:
            logger.warning("Ignoring self-link for task %s", task_id)
            continue
        after_task = repo.find_by_id(after_id)
        if after_task is None:
            logger.warning("Cannot link %s before missing task %s", task_id, after_id)
            continue
        if task_id not in after_task.tasks_before:
            after_task.tasks_before.append(task_id)
            repo.save(after_task)
            logger.info("Linked %s to tasks_before of %s", task_id, after_id)
        if after_id not in task.tasks_after:
            task.tasks_after.append(after_id)
            changed = True

    if changed:
        repo.save(task)
    return task


def _detach(repo: TaskRepo, task_id: int, before_ids: Iterable[int], after_ids: Iterable[int]) -> None:
    for before_id in before_ids:
        before_task = repo.find_by_id(before_id)
        if before_task is not None and task_id in before_task.tasks_after:
            before_task.tasks_after = [i for i in before_task.tasks_after if i != task_id]
            repo.save(before_task)
            logger.info("Unlinked %s from tasks_after of %s", task_id, before_id)

    for after_id in after_ids:
        after_task = repo.find_by_id(after_id)
        if after_task is not None and task_id in after_task.tasks_before:
            after_task.tasks_before = [i for i in after_task.tasks_before if i != task_id]
            repo.save(after_task)
            logger.info("Unlinked %s from tasks_before of %s", task_id, after_id)


def unlink_tasks(repo: TaskRepo, task_id: int) -> Task:
    """Remove every edge touching task_id, including references the task itself does not know about."""
    task = _load(repo, task_id)

    for other in repo.find_tasks(lambda t: task_id in t.tasks_after or task_id in t.tasks_before):
        if other.id == task_id:
            continue
        other.tasks_after = [i for i in other.tasks_after if i != task_id]
        other.tasks_before = [i for i in other.tasks_before if i != task_id]
        repo.save(other)

    if task.tasks_before or task.tasks_after:
        task.tasks_before = []
        task.tasks_after = []
        repo.save(task)
    return task


def reconcile_task_links(
    repo: TaskRepo,
    task_id: int,
    new_before: Iterable[int],
    new_after: Iterable[int],
) -> Task:
    """
    Move the task's edges to (new_before, new_after), touching only what changed.
    This is the entry point for task edits.
    """
    task = _load(repo, task_id)
    wanted_before = [i for i in _dedupe(new_before) if i != task_id]
    wanted_after = [i for i in _dedupe(new_after) if i != task_id]

    removed_before = [i for i in task.tasks_before if i not in wanted_before]
    removed_after = [i for i in task.tasks_after if i not in wanted_after]
    added_before = [i for i in wanted_before if i not in task.tasks_before]
    added_after = [i for i in wanted_after if i not in task.tasks_after]

    logger.debug(
        "Reconcile links task=%s +before=%s -before=%s +after=%s -after=%s",
        task_id,
        added_before,
        removed_before,
        added_after,
        removed_after,
    )

    _detach(repo, task_id, removed_before, removed_after)
    if removed_before or removed_after:
        task.tasks_before = [i for i in task.tasks_before if i not in removed_before]
        task.tasks_after = [i for i in task.tasks_after if i not in removed_after]
        repo.save(task)

    if added_before or added_after:
        return link_tasks(repo, task_id, added_before, added_after)
    return task
