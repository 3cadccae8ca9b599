# src/taskcycle/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Legacy module-level constants are exported for simple scripts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKCYCLE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Surfaces ----
    console_enabled: bool

    # ---- Daily trigger ----
    daily_enabled: bool
    daily_cron: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Scheduling ----
    work_day_start_hour: int
    work_day_end_hour: int
    default_max_per_day: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskcycle")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        daily_enabled = _env_bool(_k("DAILY_ENABLED"), True)
        daily_cron = _env(_k("DAILY_CRON"), "0 0 * * *").strip()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskcycle"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        work_day_start_hour = _env_int(_k("WORK_DAY_START_HOUR"), 9)
        work_day_end_hour = _env_int(_k("WORK_DAY_END_HOUR"), 20)
        default_max_per_day = _env_int(_k("DEFAULT_MAX_PER_DAY"), 5)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            daily_enabled=daily_enabled,
            daily_cron=daily_cron,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            work_day_start_hour=work_day_start_hour,
            work_day_end_hour=work_day_end_hour,
            default_max_per_day=default_max_per_day,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS


# --------------------------------------------------------------------------------------
# Legacy module-level constants.
# --------------------------------------------------------------------------------------

APP_NAME = SETTINGS.app_name
LOG_LEVEL = SETTINGS.log_level

CONSOLE_ENABLED = SETTINGS.console_enabled
DAILY_ENABLED = SETTINGS.daily_enabled
DAILY_CRON = SETTINGS.daily_cron

DATA_DIR = SETTINGS.data_dir
TASKS_DB_PATH = SETTINGS.tasks_db_path

WORK_DAY_START_HOUR = SETTINGS.work_day_start_hour
WORK_DAY_END_HOUR = SETTINGS.work_day_end_hour
DEFAULT_MAX_PER_DAY = SETTINGS.default_max_per_day
