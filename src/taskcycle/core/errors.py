# src/taskcycle/core/errors.py

from __future__ import annotations

"""
Error taxonomy shared by the task engine.

- NotFoundError: a referenced task/owner/list/step is absent.
  Batches log and skip; direct commands raise.
- InvalidInputError: rejected immediately, never silently defaulted.
- StoreError: persistence failure; propagated to the caller of the enclosing pass.
"""


class TaskCycleError(Exception):
    """Base class for engine errors."""


class NotFoundError(TaskCycleError, LookupError):
    pass


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class OwnerNotFoundError(NotFoundError):
    def __init__(self, owner: object) -> None:
        super().__init__(f"Owner not found: {owner}")
        self.owner = owner


class StepNotFoundError(NotFoundError):
    def __init__(self, task_id: int, step_index: int) -> None:
        super().__init__(f"Step {step_index} not found on task {task_id}")
        self.task_id = task_id
        self.step_index = step_index


class InvalidInputError(TaskCycleError, ValueError):
    pass


class StoreError(TaskCycleError, RuntimeError):
    pass
