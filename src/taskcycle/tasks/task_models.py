# src/taskcycle/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class Interval(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Anchor(StrEnum):
    START = "start"
    END = "end"


class StepInterval(StrEnum):
    PER_DAY = "per day"
    PER_WEEK = "per week"
    PER_MONTH = "per month"
    PER_YEAR = "per year"
    PER_REPEAT = "per repeat"


class OwnerKind(StrEnum):
    USER = "user"
    GROUP = "group"


@dataclass(slots=True, frozen=True)
class UserOwner:
    id: int

    @property
    def kind(self) -> OwnerKind:
        return OwnerKind.USER

    @property
    def key(self) -> str:
        return f"user:{self.id}"


@dataclass(slots=True, frozen=True)
class GroupOwner:
    id: int

    @property
    def kind(self) -> OwnerKind:
        return OwnerKind.GROUP

    @property
    def key(self) -> str:
        return f"group:{self.id}"


Owner = UserOwner | GroupOwner


def parse_owner(raw: str | None) -> Owner | None:
    """Inverse of Owner.key ("user:3" / "group:7")."""
    if not raw:
        return None
    kind, sep, ident = raw.partition(":")
    if not sep:
        raise ValueError(f"malformed owner reference: {raw!r}")
    if kind == OwnerKind.USER:
        return UserOwner(int(ident))
    if kind == OwnerKind.GROUP:
        return GroupOwner(int(ident))
    raise ValueError(f"unknown owner kind: {kind!r}")


def _dt(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(slots=True)
class RecurrenceRule:
    interval: Interval
    days: list[str] = field(default_factory=list)
    anchor: Anchor | None = None
    until: datetime | None = None
    max_repeats: int | None = None

    def __post_init__(self) -> None:
        self.interval = Interval(self.interval)
        if self.anchor is not None:
            self.anchor = Anchor(self.anchor)
        for day in self.days:
            if day not in WEEKDAYS:
                raise ValueError(f"unknown weekday: {day!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval": self.interval.value,
            "days": list(self.days),
            "anchor": self.anchor.value if self.anchor else None,
            "until": _iso(self.until),
            "max_repeats": self.max_repeats,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecurrenceRule:
        return cls(
            interval=Interval(data["interval"]),
            days=list(data.get("days") or []),
            anchor=Anchor(data["anchor"]) if data.get("anchor") else None,
            until=_dt(data.get("until")),
            max_repeats=data.get("max_repeats"),
        )


@dataclass(slots=True)
class Step:
    name: str
    is_done: bool = False
    reps: float | None = None


@dataclass(slots=True)
class CompletedCycle:
    started: datetime | None
    completed: datetime
    time_spent: float


@dataclass(slots=True)
class MissedDeadline:
    missed_due: datetime
    was_started: bool
    time_spent: float
    message: str


@dataclass(slots=True)
class DynamicSteps:
    """Automatic step progression: reps grow by `increment` percent, each time charged `total_price`."""

    enabled: bool = False
    increment: float = 0.0
    interval: StepInterval = StepInterval.PER_DAY
    total_price: float = 0.0
    last_applied: datetime | None = None

    def __post_init__(self) -> None:
        # Raises ValueError on an unknown interval ("per decade").
        self.interval = StepInterval(self.interval)


@dataclass(slots=True)
class Task:
    """
    The central entity ("entry").

    Progress fields (started/completed/total_time_spent/is_done/is_started) describe
    exactly one open cycle; for recurring tasks the cycle is closed by advance_cycle().
    Time spent is in seconds, estimated_time in minutes.
    """

    id: int | None
    title: str
    owner: Owner | None
    created: datetime

    is_done: bool = False
    completed: datetime | None = None
    is_started: bool = False
    started: datetime | None = None
    total_time_spent: float = 0.0

    due_date: datetime | None = None
    estimated_time: int | None = None
    priority: str = ""
    difficulty: str = ""
    is_urgent: bool = False

    recurrence: RecurrenceRule | None = None
    streak: int | None = None
    longest_streak: int = 0
    completed_cycles: list[CompletedCycle] = field(default_factory=list)
    cycle_date: date | None = None

    tasks_before: list[int] = field(default_factory=list)
    tasks_after: list[int] = field(default_factory=list)
    lists: list[int] = field(default_factory=list)
    is_today: bool = False

    steps: list[Step] = field(default_factory=list)
    missed_deadlines: list[MissedDeadline] = field(default_factory=list)
    dynamic_steps: DynamicSteps | None = None
    updated: datetime | None = None

    def __post_init__(self) -> None:
        if self.recurrence is None:
            self._clear_recurrence_state()

    @property
    def repeatable(self) -> bool:
        return self.recurrence is not None

    @property
    def repeat_count(self) -> int:
        return len(self.completed_cycles)

    def _clear_recurrence_state(self) -> None:
        self.streak = None
        self.longest_streak = 0
        self.completed_cycles = []
        self.cycle_date = None

    def set_recurrence(self, rule: RecurrenceRule | None) -> None:
        """Make the task repeatable (rule) or one-off (None); one-off clears all recurrence fields."""
        self.recurrence = rule
        if rule is None:
            self._clear_recurrence_state()

    # ---- serialization ----

    def to_dict(self) -> dict[str, Any]:
        ds = self.dynamic_steps
        return {
            "id": self.id,
            "title": self.title,
            "owner": self.owner.key if self.owner else None,
            "created": _iso(self.created),
            "is_done": self.is_done,
            "completed": _iso(self.completed),
            "is_started": self.is_started,
            "started": _iso(self.started),
            "total_time_spent": self.total_time_spent,
            "due_date": _iso(self.due_date),
            "estimated_time": self.estimated_time,
            "priority": self.priority,
            "difficulty": self.difficulty,
            "is_urgent": self.is_urgent,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
            "streak": self.streak,
            "longest_streak": self.longest_streak,
            "completed_cycles": [
                {"started": _iso(c.started), "completed": _iso(c.completed), "time_spent": c.time_spent}
                for c in self.completed_cycles
            ],
            "cycle_date": _iso(self.cycle_date),
            "tasks_before": list(self.tasks_before),
            "tasks_after": list(self.tasks_after),
            "lists": list(self.lists),
            "is_today": self.is_today,
            "steps": [{"name": s.name, "is_done": s.is_done, "reps": s.reps} for s in self.steps],
            "missed_deadlines": [
                {
                    "missed_due": _iso(m.missed_due),
                    "was_started": m.was_started,
                    "time_spent": m.time_spent,
                    "message": m.message,
                }
                for m in self.missed_deadlines
            ],
            "dynamic_steps": (
                {
                    "enabled": ds.enabled,
                    "increment": ds.increment,
                    "interval": ds.interval.value,
                    "total_price": ds.total_price,
                    "last_applied": _iso(ds.last_applied),
                }
                if ds
                else None
            ),
            "updated": _iso(self.updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        rec = data.get("recurrence")
        ds = data.get("dynamic_steps")
        cycle_date = data.get("cycle_date")
        return cls(
            id=data.get("id"),
            title=str(data.get("title") or ""),
            owner=parse_owner(data.get("owner")),
            created=_dt(data.get("created")) or datetime.now(),
            is_done=bool(data.get("is_done")),
            completed=_dt(data.get("completed")),
            is_started=bool(data.get("is_started")),
            started=_dt(data.get("started")),
            total_time_spent=float(data.get("total_time_spent") or 0.0),
            due_date=_dt(data.get("due_date")),
            estimated_time=data.get("estimated_time"),
            priority=str(data.get("priority") or ""),
            difficulty=str(data.get("difficulty") or ""),
            is_urgent=bool(data.get("is_urgent")),
            recurrence=RecurrenceRule.from_dict(rec) if rec else None,
            streak=data.get("streak"),
            longest_streak=int(data.get("longest_streak") or 0),
            completed_cycles=[
                CompletedCycle(
                    started=_dt(c.get("started")),
                    completed=_dt(c["completed"]),  # type: ignore[arg-type]
                    time_spent=float(c.get("time_spent") or 0.0),
                )
                for c in data.get("completed_cycles") or []
            ],
            cycle_date=date.fromisoformat(cycle_date) if cycle_date else None,
            tasks_before=[int(x) for x in data.get("tasks_before") or []],
            tasks_after=[int(x) for x in data.get("tasks_after") or []],
            lists=[int(x) for x in data.get("lists") or []],
            is_today=bool(data.get("is_today")),
            steps=[
                Step(name=str(s.get("name") or ""), is_done=bool(s.get("is_done")), reps=s.get("reps"))
                for s in data.get("steps") or []
            ],
            missed_deadlines=[
                MissedDeadline(
                    missed_due=_dt(m["missed_due"]),  # type: ignore[arg-type]
                    was_started=bool(m.get("was_started")),
                    time_spent=float(m.get("time_spent") or 0.0),
                    message=str(m.get("message") or ""),
                )
                for m in data.get("missed_deadlines") or []
            ],
            dynamic_steps=(
                DynamicSteps(
                    enabled=bool(ds.get("enabled")),
                    increment=float(ds.get("increment") or 0.0),
                    interval=StepInterval(ds.get("interval") or StepInterval.PER_DAY),
                    total_price=float(ds.get("total_price") or 0.0),
                    last_applied=_dt(ds.get("last_applied")),
                )
                if ds
                else None
            ),
            updated=_dt(data.get("updated")),
        )


@dataclass(slots=True)
class User:
    id: int
    username: str
    score: float = 0.0
    currency: float = 0.0


@dataclass(slots=True)
class Group:
    id: int
    name: str
    owner_id: int
    member_ids: list[int] = field(default_factory=list)


@dataclass(slots=True)
class TaskList:
    id: int
    name: str
    owner: Owner


@dataclass(slots=True)
class Notification:
    id: int
    user_id: int
    message: str
    kind: str
    created: datetime
    is_read: bool = False
