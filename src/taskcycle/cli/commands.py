# src/taskcycle/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.errors import InvalidInputError, StepNotFoundError, TaskCycleError
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.sorting import SORT_DIRECTIONS
from ..tasks.task_models import Task, UserOwner, parse_owner

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /today, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                return cast(CommandHandler3, handler)(state, args, emit)
            return cast(CommandHandler2, handler)(state, args)
        except TaskCycleError as e:
            logger.debug("Command /%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _int(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise InvalidInputError(f"{what} must be an integer, got {raw!r}") from None


def _ids(raw: list[str]) -> list[int]:
    out: list[int] = []
    for chunk in raw:
        out.extend(_int(p, "task id") for p in chunk.split(",") if p.strip())
    return out


def _fmt_task(task: Task) -> str:
    due = task.due_date.strftime("%Y-%m-%d %H:%M") if task.due_date else "-"
    flags = []
    if task.is_done:
        flags.append("done")
    if task.is_today:
        flags.append("today")
    if task.repeatable:
        flags.append(f"streak={task.streak or 0}")
    flag_str = f" [{', '.join(flags)}]" if flags else ""
    return f"#{task.id} {task.title} (due {due}, est {task.estimated_time or 0}m){flag_str}"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    return (
        "Status:\n"
        f"  App: {getattr(settings, 'app_name', 'taskcycle')}\n"
        f"  Database: {getattr(settings, 'tasks_db_path', '?')}\n"
        f"  Tasks: {state.store.count_tasks()}\n"
        f"  Users: {len(state.store.find_all_users())}\n"
        f"  Daily trigger: {'ON' if getattr(settings, 'daily_enabled', False) else 'OFF'}"
        f" ({getattr(settings, 'daily_cron', '?')})"
    )


def cmd_users(state: AppState, args: list[str]) -> str:
    """
    /users             -> list users
    /users add <name>  -> create a user (with its "today" list)
    """
    if args and args[0].lower() == "add":
        if len(args) < 2:
            return "Usage: /users add <name>"
        user = state.store.add_user(args[1])
        return f"User #{user.id} {user.username} created."

    users = state.store.find_all_users()
    if not users:
        return "No users yet. Use /users add <name>."
    lines = ["Users:"]
    for u in users:
        lines.append(f"  #{u.id} {u.username} score={u.score:.2f} currency={u.currency:.0f}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <user:ID|group:ID> <estimate-minutes> <title...>"""
    if len(args) < 3:
        return "Usage: /add <user:ID|group:ID> <estimate-minutes> <title...>"
    try:
        owner = parse_owner(args[0])
    except ValueError as e:
        raise InvalidInputError(str(e)) from None
    estimate = _int(args[1], "estimate")
    task = Task(id=None, title=" ".join(args[2:]), owner=owner, created=datetime.now(), estimated_time=estimate)
    task = task_api.create_task(state, task)
    return f"Created {_fmt_task(task)}"


def cmd_today(state: AppState, args: list[str]) -> str:
    """/today <user_id> -> tasks in the user's "today" list"""
    if not args:
        return "Usage: /today <user_id>"
    user_id = _int(args[0], "user id")
    user = state.store.find_user(user_id)
    if user is None:
        return f"User {user_id} not found."
    today_list = state.store.find_today_list(UserOwner(user_id))
    if today_list is None:
        return f"User {user_id} has no today list."

    tasks = state.store.find_tasks(lambda t: today_list.id in t.lists)
    if not tasks:
        return f"Nothing on today's list for {user.username}."
    lines = [f"Today for {user.username}:"]
    lines.extend(f"  {_fmt_task(t)}" for t in tasks)
    return "\n".join(lines)


def cmd_reconcile(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/reconcile -> run the daily jobs now"""
    if emit:
        emit("[DAILY] Running reconciliation, missed deadlines and dynamic steps...")
    result = task_api.run_daily_jobs(state)
    rep = result.reconciliation
    failed = f" failed={rep.users_failed}" if rep.users_failed else ""
    return (
        f"Reconciled users={rep.users_processed} saved={rep.tasks_saved}{failed}; "
        f"missed deadlines={result.missed_deadlines}; dynamic steps={result.dynamic_steps}"
    )


def cmd_schedule(state: AppState, args: list[str]) -> str:
    """/schedule <max_per_day> <id[,id...]>"""
    if len(args) < 2:
        return "Usage: /schedule <max_per_day> <id[,id...]>"
    max_per_day = _int(args[0], "max_per_day")
    scheduled = task_api.schedule_tasks(state, _ids(args[1:]), max_per_day)
    lines = ["Scheduled:"]
    lines.extend(f"  {_fmt_task(t)}" for t in scheduled)
    return "\n".join(lines)


def cmd_sort(state: AppState, args: list[str]) -> str:
    """/sort <attribute> [descending|ascending] <id[,id...]>"""
    if len(args) < 2:
        return "Usage: /sort <priority|difficulty|estimatedTime|urgent|random> [descending|ascending] <ids>"
    attribute = args[0]
    rest = args[1:]
    direction = "descending"
    if rest and rest[0] in SORT_DIRECTIONS:
        direction = rest[0]
        rest = rest[1:]
    ordered = task_api.sort_tasks(state, _ids(rest), attribute, direction)
    return "\n".join(_fmt_task(t) for t in ordered) or "No tasks."


def cmd_start(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /start <id>"
    task = task_api.start_task(state, _int(args[0], "task id"))
    return f"Started {_fmt_task(task)}"


def cmd_done(state: AppState, args: list[str]) -> str:
    """/done <id> [minutes-spent]"""
    if not args:
        return "Usage: /done <id> [minutes-spent]"
    task_id = _int(args[0], "task id")
    spent = _int(args[1], "minutes") * 60 if len(args) > 1 else None
    task, score = task_api.complete_task(state, task_id, time_spent=spent)
    return f"Completed {_fmt_task(task)} score={score:.2f}"


def cmd_cancel(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /cancel <id>"
    task = task_api.cancel_task(state, _int(args[0], "task id"))
    return f"Cancelled start of {_fmt_task(task)}"


def cmd_step(state: AppState, args: list[str]) -> str:
    """/step <id> <step-number> [undo]"""
    if len(args) < 2:
        return "Usage: /step <id> <step-number> [undo]"
    task_id = _int(args[0], "task id")
    number = _int(args[1], "step number")
    done = not (len(args) > 2 and args[2].lower() == "undo")
    try:
        task = task_api.set_step_done(state, task_id, number - 1, done)
    except StepNotFoundError:
        return f"Task #{task_id} has no step {number}."
    step = task.steps[number - 1]
    return f"#{task.id} step {number} '{step.name}' {'done' if done else 'not done'}."


def cmd_link(state: AppState, args: list[str]) -> str:
    """/link <id> [before=<ids>] [after=<ids>]"""
    if not args:
        return "Usage: /link <id> [before=1,2] [after=3]"
    task_id = _int(args[0], "task id")
    before: list[int] = []
    after: list[int] = []
    for arg in args[1:]:
        key, sep, value = arg.partition("=")
        if not sep or key not in ("before", "after"):
            return f"Unknown link argument: {arg!r}"
        (before if key == "before" else after).extend(_ids([value]))
    task = task_api.link_tasks(state, task_id, before, after)
    return f"#{task.id} before={task.tasks_before} after={task.tasks_after}"


def cmd_unlink(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /unlink <id>"
    task = task_api.unlink_tasks(state, _int(args[0], "task id"))
    return f"#{task.id} unlinked."


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <id>"
    task_id = _int(args[0], "task id")
    task_api.delete_task(state, task_id)
    return f"#{task_id} deleted."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database and trigger status.")
registry.register("users", cmd_users, help_text="List users or create one: /users add <name>.")
registry.register("add", cmd_add, help_text="Create a task: /add <user:ID|group:ID> <minutes> <title>.")
registry.register("today", cmd_today, help_text="Show a user's today list: /today <user_id>.")
registry.register("reconcile", cmd_reconcile, help_text="Run the daily jobs now.")
registry.register("schedule", cmd_schedule, help_text="Schedule tasks: /schedule <max_per_day> <ids>.")
registry.register("sort", cmd_sort, help_text="Sort tasks: /sort <attribute> [direction] <ids>.")
registry.register("start", cmd_start, help_text="Start a task: /start <id>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <id> [minutes].")
registry.register("cancel", cmd_cancel, help_text="Undo a start: /cancel <id>.")
registry.register("step", cmd_step, help_text="Mark a step done: /step <id> <n> [undo].")
registry.register("link", cmd_link, help_text="Link tasks: /link <id> before=1,2 after=3.")
registry.register("unlink", cmd_unlink, help_text="Remove every link of a task: /unlink <id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
