# src/taskcycle/tasks/task_scheduler.py

from __future__ import annotations

"""
Daily trigger.

A small cron-driven loop that:
- computes the next fire time from a cron expression (croniter),
- sleeps until then,
- runs the injected daily jobs with the fire time as the reference moment,
- logs failures and simply waits for the next fire time (no in-run retry).

What the jobs do (reconciliation, missed deadlines, dynamic steps) belongs to task_api,
not to the loop.
"""

import asyncio
import contextlib
import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from croniter import croniter

from ..core.errors import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_DAILY_CRON = "0 0 * * *"

DailyJobs = Callable[[datetime], Any]


def validate_cron_expression(cron_expr: str) -> None:
    if not cron_expr or not croniter.is_valid(cron_expr):
        raise InvalidInputError(f"Invalid cron expression: {cron_expr!r}")


def next_fire_time(cron_expr: str, base: datetime) -> datetime:
    return croniter(cron_expr, base).get_next(datetime)


async def _run_jobs(jobs: DailyJobs, fire_at: datetime) -> None:
    if inspect.iscoroutinefunction(jobs):
        await jobs(fire_at)
    else:
        # Jobs hit SQLite synchronously; keep the loop responsive.
        await asyncio.to_thread(jobs, fire_at)


async def run_daily_scheduler(
    jobs: DailyJobs,
    *,
    cron_expr: str = DEFAULT_DAILY_CRON,
    now_fn: Callable[[], datetime] = datetime.now,
    sleep_fn: Callable[[float], Any] = asyncio.sleep,
    max_runs: int | None = None,
) -> int:
    """
    Run `jobs(fire_at)` at every fire time of `cron_expr`.

    Returns the number of completed iterations (only reachable with max_runs).
    To stop the scheduler, cancel the coroutine/task.
    """
    validate_cron_expression(cron_expr)
    runs = 0

    while max_runs is None or runs < max_runs:
        now = now_fn()
        fire_at = next_fire_time(cron_expr, now)
        delay = max(0.0, (fire_at - now).total_seconds())
        logger.debug("Daily trigger sleeping %.0fs until %s", delay, fire_at)
        await sleep_fn(delay)

        logger.info("Daily trigger fired at %s", fire_at)
        try:
            await _run_jobs(jobs, fire_at)
        except Exception:
            logger.exception("Daily jobs failed for fire time %s", fire_at)
        runs += 1

    return runs


@dataclass(slots=True)
class DailyBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal daily trigger stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _run_until_stopped(jobs: DailyJobs, cron_expr: str, stop_event: asyncio.Event) -> None:
    scheduler = asyncio.create_task(run_daily_scheduler(jobs, cron_expr=cron_expr))
    stopper = asyncio.create_task(stop_event.wait())
    done, _ = await asyncio.wait({scheduler, stopper}, return_when=asyncio.FIRST_COMPLETED)

    for t in (scheduler, stopper):
        if t not in done:
            t.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await t

    if scheduler in done and scheduler.exception() is not None:
        logger.error("Daily trigger stopped with an error", exc_info=scheduler.exception())


def start_daily_in_background(jobs: DailyJobs, *, cron_expr: str = DEFAULT_DAILY_CRON) -> DailyBackgroundRunner | None:
    """
    Start the daily trigger in a background thread with its own event loop,
    so the blocking console REPL can run in the main thread.
    """
    validate_cron_expression(cron_expr)

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_until_stopped(jobs, cron_expr, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="daily-trigger", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Daily trigger thread did not initialize properly.")
        return None

    logger.info("Daily trigger started cron=%r", cron_expr)
    return DailyBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
