# src/taskcycle/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the daily trigger in a background thread (optional),
- the operator console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading
from datetime import datetime

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks import task_api
from ..tasks.task_scheduler import DailyBackgroundRunner, start_daily_in_background

logger = logging.getLogger(__name__)


def _daily_jobs_for(state: AppState):
    def jobs(fire_at: datetime) -> None:
        with state.lock:
            result = task_api.run_daily_jobs(state, fire_at)
        logger.info(
            "Daily jobs done users=%d failed=%d missed=%d dynamic=%d",
            result.reconciliation.users_processed,
            len(result.reconciliation.users_failed),
            result.missed_deadlines,
            result.dynamic_steps,
        )

    return jobs


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/taskcycle")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "taskcycle"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    daily_runner: DailyBackgroundRunner | None = None
    if settings.daily_enabled:
        daily_runner = start_daily_in_background(_daily_jobs_for(state), cron_expr=settings.daily_cron)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Not in the main thread, or the platform lacks SIGTERM.
        logger.debug("Signal handlers not installed.", exc_info=True)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the daily trigger only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if daily_runner is not None:
            daily_runner.stop()
            daily_runner.join(timeout=10.0)

        state.store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
