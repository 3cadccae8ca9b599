# src/taskcycle/tasks/today.py

from __future__ import annotations

"""
Today-membership resolver.

One pass per user, two phases:
1) compute every owned task's is_today flag (deadline window OR recurrence occurrence,
   the latter also advancing the recurrence cycle);
2) rebuild the "today" lists from scratch: strip the list id from every task,
   then re-add it to exactly the tasks marked today. The user's list covers every
   task the user can see; each group's list covers that group's own tasks.

Only tasks whose serialized state changed are written back, so re-running the pass
for an unchanged day writes nothing.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..core.locks import OwnerLocks
from ..core.ports import OwnerRepo, TaskRepo
from .recurrence import advance_cycle, is_occurrence_day, start_of_day
from .task_models import GroupOwner, Owner, Task, User, UserOwner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserPassResult:
    user_id: int
    tasks_seen: int = 0
    today_ids: list[int] = field(default_factory=list)
    saved: int = 0


@dataclass(slots=True)
class ReconciliationReport:
    reference: datetime
    users_processed: int = 0
    users_failed: list[int] = field(default_factory=list)
    tasks_saved: int = 0


def deadline_is_today(task: Task, reference: datetime) -> bool:
    """
    Deadline candidate: the due date, shifted back by the estimate, falls inside today.
    A long task "becomes due" earlier so the estimated effort still finishes in time.
    """
    if task.due_date is None:
        return False
    day_start = start_of_day(reference)
    day_end = day_start + timedelta(days=1)
    deadline = task.due_date
    if task.estimated_time:
        deadline = deadline - timedelta(minutes=task.estimated_time)
    return day_start <= deadline < day_end


def compute_is_today(task: Task, reference: datetime) -> bool:
    """Decide (and set) task.is_today, advancing the recurrence cycle on an occurrence day."""
    if task.due_date is None and not task.repeatable:
        task.is_today = False
        return False

    is_today = deadline_is_today(task, reference)

    rule = task.recurrence
    if rule is not None and is_occurrence_day(rule, reference, task.repeat_count):
        advance_cycle(task, reference)
        is_today = True

    task.is_today = is_today
    return is_today


def rebuild_today_list(tasks: list[Task], today_list_id: int) -> None:
    for task in tasks:
        task.lists = [list_id for list_id in task.lists if list_id != today_list_id]
        if task.is_today:
            task.lists.append(today_list_id)


def _owners_for(user: User, owners: OwnerRepo) -> list[Owner]:
    out: list[Owner] = [UserOwner(user.id)]
    out.extend(GroupOwner(g.id) for g in owners.find_groups_for_user(user.id))
    return out


def resolve_user_today(
    user: User,
    *,
    tasks: TaskRepo,
    owners: OwnerRepo,
    reference: datetime,
) -> UserPassResult:
    result = UserPassResult(user_id=user.id)
    all_owners = _owners_for(user, owners)
    group_owners = [o for o in all_owners if isinstance(o, GroupOwner)]
    owned = tasks.find_tasks_for_owners(all_owners)
    result.tasks_seen = len(owned)

    before = {t.id: t.to_dict() for t in owned}

    # Phase 1: compute desired membership.
    for task in owned:
        try:
            if compute_is_today(task, reference):
                result.today_ids.append(task.id)  # type: ignore[arg-type]
        except Exception:
            logger.exception("is_today evaluation failed task=%s user=%s", task.id, user.id)

    # Phase 2: rebuild the lists from scratch. The user's list holds every owned
    # task; each group's list holds only that group's tasks.
    today_list = owners.find_today_list(UserOwner(user.id))
    if today_list is None:
        logger.warning("User %s has no today list; membership not rebuilt", user.id)
    else:
        rebuild_today_list(owned, today_list.id)

    for group_owner in group_owners:
        group_list = owners.find_today_list(group_owner)
        if group_list is None:
            logger.warning("Group %s has no today list; membership not rebuilt", group_owner.id)
            continue
        rebuild_today_list([t for t in owned if t.owner == group_owner], group_list.id)

    for task in owned:
        if task.to_dict() != before[task.id]:
            tasks.save(task)
            result.saved += 1

    logger.debug(
        "Today pass user=%s tasks=%d today=%d saved=%d",
        user.id,
        result.tasks_seen,
        len(result.today_ids),
        result.saved,
    )
    return result


def run_daily_reconciliation(
    tasks: TaskRepo,
    owners: OwnerRepo,
    *,
    reference: datetime | None = None,
    locks: OwnerLocks | None = None,
) -> ReconciliationReport:
    """
    Run the resolver for every user.

    A failure inside one user's pass is logged and the run moves on to the next user.
    A failure listing users (store unavailable) propagates to the caller.
    """
    reference = reference or datetime.now()
    report = ReconciliationReport(reference=reference)
    locks = locks or OwnerLocks()

    users = owners.find_all_users()
    logger.info("Daily reconciliation started users=%d reference=%s", len(users), reference.date())

    for user in users:
        try:
            keys = [o.key for o in _owners_for(user, owners)]
            with locks.hold(keys):
                res = resolve_user_today(user, tasks=tasks, owners=owners, reference=reference)
            report.users_processed += 1
            report.tasks_saved += res.saved
        except Exception:
            logger.exception("Daily reconciliation failed for user=%s", user.id)
            report.users_failed.append(user.id)

    logger.info(
        "Daily reconciliation done processed=%d failed=%d saved=%d",
        report.users_processed,
        len(report.users_failed),
        report.tasks_saved,
    )
    return report
