# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskcycle.core.state import AppState
from taskcycle.tasks.task_store import TaskStore

from .fakes import RecordingNotifier, ScriptedAwarder


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the task API.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskcycle-test",
        log_level="DEBUG",
        console_enabled=False,
        daily_enabled=False,
        daily_cron="0 0 * * *",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        work_day_start_hour=9,
        work_day_end_hour=20,
        default_max_per_day=5,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def awarder() -> ScriptedAwarder:
    return ScriptedAwarder()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, notifier: RecordingNotifier, awarder: ScriptedAwarder) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep a real SQLite TaskStore here because its correctness is part
    of what we want to test.
    """
    return AppState(settings=settings, store=store, notifier=notifier, awarder=awarder)
