# src/taskcycle/tasks/scoring.py

from __future__ import annotations

"""
Completion scoring and rewards.

on_task_completed() runs once per false->true transition of Task.is_done.
It credits points to the owner (or every group member) and rolls for currency.
"""

import logging

from ..core.errors import InvalidInputError
from ..core.ports import CurrencyAwarder, OwnerRepo
from .task_models import GroupOwner, Task, User, UserOwner

logger = logging.getLogger(__name__)

MAX_TASK_SCORE = 20.0
STREAK_BASE = 1.05
REPEAT_BONUS = 0.1
MAX_REPEAT_CURRENCY_CHANCE = 0.2
GROUP_CURRENCY_BONUS = 0.03


def score_repeatable(task: Task) -> tuple[float, float]:
    streak = task.streak or 0
    score = 1 * STREAK_BASE**streak + REPEAT_BONUS * task.repeat_count
    chance = min(0.01 * streak, MAX_REPEAT_CURRENCY_CHANCE)
    return score, chance


def score_one_off(task: Task) -> tuple[float, float]:
    """
    Points for a finished one-off task: 1 base, +1 with a due date and +4 when done by it,
    +1 with an estimate and +3 when within it. The sum is scaled by the hours spent, then
    +1 per done step is added. Scaling happens before the step points, so a 10-point task
    with 30 minutes spent and 2 done steps scores 10 * 1.025 + 2 = 12.25, not 12.3.
    """
    score = 1.0

    if task.due_date is not None:
        score += 1
        if task.completed is not None and task.completed <= task.due_date:
            score += 4

    if task.estimated_time:
        score += 1
        if task.total_time_spent <= task.estimated_time * 60:
            score += 3

    hours_spent = task.total_time_spent / 3600
    score *= 1 + 0.05 * hours_spent

    score += sum(1 for step in task.steps if step.is_done)

    score = min(score, MAX_TASK_SCORE)
    return score, score / 100


def calculate_score(task: Task) -> tuple[float, float]:
    """(score, currency chance) for a task; (0, 0) when it is not done."""
    if not task.is_done:
        return 0.0, 0.0
    if task.repeatable:
        return score_repeatable(task)
    return score_one_off(task)


def on_task_completed(task: Task, users: OwnerRepo, awarder: CurrencyAwarder) -> float:
    if not task.is_done:
        return 0.0
    score, chance = calculate_score(task)

    owner = task.owner
    if isinstance(owner, UserOwner):
        user = users.find_user(owner.id)
        if user is None:
            logger.warning("Score skipped: owner user %s of task %s not found", owner.id, task.id)
            return score
        user.score += score
        users.save_user(user)
        awarder.award_currency(user.id, chance)

    elif isinstance(owner, GroupOwner):
        group = users.find_group(owner.id)
        if group is None:
            logger.warning("Score skipped: owner group %s of task %s not found", owner.id, task.id)
            return score
        chance += GROUP_CURRENCY_BONUS
        awarded = False
        for member_id in group.member_ids:
            member = users.find_user(member_id)
            if member is None:
                logger.warning("Group %s member %s not found", group.id, member_id)
                continue
            member.score += score
            users.save_user(member)
            # One success is shared by the whole group.
            if awarded:
                awarder.award_currency(member_id, 1.0)
            else:
                awarded = awarder.award_currency(member_id, chance) > 0

    else:
        logger.warning("Task %s has no owner; score not credited", task.id)

    logger.info("Task %s completed score=%.2f chance=%.3f", task.id, score, chance)
    return score


def calculate_reward(vote_count: int) -> float:
    """Reward multiplier for an entry with `vote_count` votes: generous early, floor of 0.5."""
    table = {0: 2.0, 1: 1.5, 2: 1.25, 3: 1.1, 4: 1.05, 5: 1.0}
    if vote_count in table:
        return table[vote_count]
    return max(0.5, 1 - (vote_count - 2) * 0.01)


# ---- ledger helpers ----


def _check_amount(user: User | None, amount: float, what: str) -> User:
    if user is None or not isinstance(amount, (int, float)) or amount <= 0:
        raise InvalidInputError(f"Invalid user or amount for {what}")
    return user


def add_score(users: OwnerRepo, user: User | None, amount: float) -> User:
    user = _check_amount(user, amount, "adding score")
    user.score += amount
    return users.save_user(user)


def remove_score(users: OwnerRepo, user: User | None, amount: float) -> User:
    user = _check_amount(user, amount, "removing score")
    user.score = max(0.0, user.score - amount)
    return users.save_user(user)


def add_currency(users: OwnerRepo, user: User | None, amount: float) -> User:
    user = _check_amount(user, amount, "adding currency")
    user.currency += amount
    return users.save_user(user)


def remove_currency(users: OwnerRepo, user: User | None, amount: float) -> User:
    user = _check_amount(user, amount, "removing currency")
    user.currency = max(0.0, user.currency - amount)
    return users.save_user(user)
