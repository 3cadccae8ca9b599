# src/taskcycle/tasks/currency.py

from __future__ import annotations

import logging
import random

from ..core.ports import OwnerRepo

logger = logging.getLogger(__name__)

CURRENCY_PER_AWARD = 1.0


class RandomCurrencyAwarder:
    """Grants CURRENCY_PER_AWARD to a user with probability `chance`."""

    def __init__(self, users: OwnerRepo, rng: random.Random | None = None) -> None:
        self._users = users
        self._rng = rng or random.Random()

    def award_currency(self, user_id: int, chance: float) -> float:
        user = self._users.find_user(user_id)
        if user is None:
            logger.warning("Currency award skipped: user %s not found", user_id)
            return 0.0
        if self._rng.random() >= chance:
            return 0.0
        user.currency += CURRENCY_PER_AWARD
        self._users.save_user(user)
        logger.info("Awarded %s currency to user=%s (chance=%.3f)", CURRENCY_PER_AWARD, user_id, chance)
        return CURRENCY_PER_AWARD
