# src/taskcycle/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_store import TaskStore
from .locks import OwnerLocks
from .ports import CurrencyAwarder, Notifier


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules.
    settings: Any

    store: TaskStore
    notifier: Notifier
    awarder: CurrencyAwarder

    locks: OwnerLocks = field(default_factory=OwnerLocks)

    # Serializes console commands against the background daily trigger.
    lock: threading.RLock = field(default_factory=threading.RLock)
