# src/taskcycle/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine depends on Protocols instead of concrete implementations.
This keeps storage/notification/currency providers swappable and makes testing easier.
"""

from collections.abc import Callable, Iterable
from typing import Any, Protocol

TaskPredicate = Callable[[Any], bool]


class TaskRepo(Protocol):
    """Task persistence. Each save() is independent; there are no transactions."""

    def find_tasks(self, predicate: TaskPredicate | None = None) -> list[Any]: ...
    def find_tasks_for_owners(self, owners: Iterable[Any]) -> list[Any]: ...
    def find_scheduled_between(self, start: Any, end: Any) -> list[Any]: ...
    def find_by_id(self, task_id: int) -> Any | None: ...
    def save(self, task: Any) -> Any: ...
    def delete_by_id(self, task_id: int) -> None: ...


class OwnerRepo(Protocol):
    def find_all_users(self) -> list[Any]: ...
    def find_user(self, user_id: int) -> Any | None: ...
    def save_user(self, user: Any) -> Any: ...
    def find_group(self, group_id: int) -> Any | None: ...
    def find_groups_for_user(self, user_id: int) -> list[Any]: ...
    def find_today_list(self, owner: Any) -> Any | None: ...


class CurrencyAwarder(Protocol):
    """Probabilistic currency grant. Returns the amount awarded (0 when nothing was granted)."""

    def award_currency(self, user_id: int, chance: float) -> float: ...


class Notifier(Protocol):
    """
    Outbound notification port.

    Delivery (in-app inbox, e-mail, push) belongs to the implementation, not the engine.
    """

    def notify(self, user_id: int, message: str, kind: str = "info") -> None: ...
