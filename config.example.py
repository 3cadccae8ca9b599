# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKCYCLE_APP_NAME": "App display name (default: taskcycle).",
    "TASKCYCLE_LOG_LEVEL": "Console logging level (default: INFO).",
    # Surfaces
    "TASKCYCLE_CONSOLE_ENABLED": "Start the operator console (true/false, default: true).",
    # Daily trigger
    "TASKCYCLE_DAILY_ENABLED": "Run the daily jobs on a cron schedule (true/false, default: true).",
    "TASKCYCLE_DAILY_CRON": "Cron expression for the daily jobs (default: '0 0 * * *').",
    # Paths (gitignored)
    "TASKCYCLE_DATA_DIR": "Local data directory (default: .local/taskcycle).",
    "TASKCYCLE_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Scheduling
    "TASKCYCLE_WORK_DAY_START_HOUR": "Start of the daily working window (default: 9).",
    "TASKCYCLE_WORK_DAY_END_HOUR": "End of the daily working window (default: 20).",
    "TASKCYCLE_DEFAULT_MAX_PER_DAY": "Scheduler capacity when none is given (default: 5).",
}
