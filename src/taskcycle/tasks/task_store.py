# src/taskcycle/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.errors import InvalidInputError, StoreError
from ..core.ports import TaskPredicate
from .task_models import (
    Group,
    GroupOwner,
    Notification,
    Owner,
    Task,
    TaskList,
    User,
    UserOwner,
    parse_owner,
)

logger = logging.getLogger(__name__)

TODAY_LIST_NAME = "today"


class TaskStore:
    """
    SQLite task/owner store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Tasks keep a few indexed columns (owner, due_at, ...) next to a JSON `data`
    document holding the full Task; the JSON is the source of truth.

    Thread-safety:
    - each method opens its own SQLite connection
    - sqlite3 errors are re-raised as StoreError
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {self._db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._conn() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner TEXT,
                    is_done INTEGER NOT NULL DEFAULT 0,
                    repeatable INTEGER NOT NULL DEFAULT 0,
                    due_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    data TEXT NOT NULL DEFAULT '{}'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    score REAL NOT NULL DEFAULT 0,
                    currency REAL NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS groups (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    owner_id INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS group_members (
                    group_id INTEGER NOT NULL,
                    user_id INTEGER NOT NULL,
                    PRIMARY KEY (group_id, user_id)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS lists (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    owner TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    message TEXT NOT NULL,
                    kind TEXT NOT NULL DEFAULT 'info',
                    created_at TEXT NOT NULL,
                    is_read INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("owner", "TEXT")
            add_col("is_done", "INTEGER NOT NULL DEFAULT 0")
            add_col("repeatable", "INTEGER NOT NULL DEFAULT 0")
            add_col("due_at", "TEXT")
            add_col("data", "TEXT NOT NULL DEFAULT '{}'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner ON tasks(owner)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(repeatable, due_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_lists_owner ON lists(owner, name)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_members_user ON group_members(user_id)")

            conn.commit()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        try:
            data = json.loads(row["data"] or "{}")
        except json.JSONDecodeError as e:
            raise StoreError(f"corrupt task document id={row['id']}") from e
        data["id"] = int(row["id"])
        return Task.from_dict(data)

    @staticmethod
    def _row_to_list(row: sqlite3.Row) -> TaskList:
        owner = parse_owner(row["owner"])
        assert owner is not None
        return TaskList(id=int(row["id"]), name=str(row["name"]), owner=owner)

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._conn() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def find_tasks(self, predicate: TaskPredicate | None = None) -> list[Task]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY id ASC").fetchall()
        tasks = [self._row_to_task(r) for r in rows]
        if predicate is None:
            return tasks
        return [t for t in tasks if predicate(t)]

    def find_tasks_for_owners(self, owners: Iterable[Owner]) -> list[Task]:
        keys = [o.key for o in owners]
        if not keys:
            return []
        placeholders = ",".join("?" for _ in keys)
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM tasks WHERE owner IN ({placeholders}) ORDER BY id ASC",
                keys,
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def find_scheduled_between(self, start: datetime, end: datetime) -> list[Task]:
        """One-off tasks with start <= due_date < end, ascending by due date (uses idx_tasks_due)."""
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT * FROM tasks
                WHERE repeatable = 0 AND due_at >= ? AND due_at < ?
                ORDER BY due_at ASC, id ASC
                """,
                (start.isoformat(), end.isoformat()),
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def find_by_id(self, task_id: int) -> Task | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        return self._row_to_task(row) if row else None

    def save(self, task: Task) -> Task:
        """Insert (id is None) or replace a task; returns the task with its id set."""
        if not task.title or not task.title.strip():
            raise InvalidInputError("title is required")

        task.updated = datetime.now()
        data = task.to_dict()
        params: tuple[Any, ...] = (
            data["owner"],
            int(task.is_done),
            int(task.repeatable),
            data["due_date"],
            data["created"],
            data["updated"],
        )

        with self._conn() as conn:
            cur = conn.cursor()
            if task.id is None:
                cur.execute(
                    """
                    INSERT INTO tasks(owner, is_done, repeatable, due_at, created_at, updated_at, data)
                    VALUES (?, ?, ?, ?, ?, ?, '{}')
                    """,
                    params,
                )
                rowid = cur.lastrowid
                if rowid is None:
                    raise StoreError("SQLite did not return lastrowid for tasks insert")
                task.id = int(rowid)
                data["id"] = task.id
            cur.execute(
                """
                UPDATE tasks
                SET owner = ?, is_done = ?, repeatable = ?, due_at = ?,
                    created_at = ?, updated_at = ?, data = ?
                WHERE id = ?
                """,
                (*params, json.dumps(data, ensure_ascii=False), task.id),
            )
            if cur.rowcount != 1:
                raise StoreError(f"task {task.id} vanished during save")
            conn.commit()

        logger.debug("Task saved id=%s owner=%s due=%s", task.id, data["owner"], data["due_date"])
        return task

    def delete_by_id(self, task_id: int) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()

    # ---- users / groups ----

    def add_user(self, username: str, *, score: float = 0.0, currency: float = 0.0) -> User:
        """Create a user together with the user's "today" list."""
        if not username or not username.strip():
            raise InvalidInputError("username is required")
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO users(username, score, currency) VALUES (?, ?, ?)",
                (username.strip(), float(score), float(currency)),
            )
            conn.commit()
            user = User(id=int(cur.lastrowid or 0), username=username.strip(), score=score, currency=currency)
        self.add_list(TODAY_LIST_NAME, user_owner(user.id))
        logger.info("User added id=%s username=%s", user.id, user.username)
        return user

    def find_user(self, user_id: int) -> User | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (int(user_id),)).fetchone()
        if not row:
            return None
        return User(id=int(row["id"]), username=row["username"], score=row["score"], currency=row["currency"])

    def find_all_users(self) -> list[User]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id ASC").fetchall()
        return [
            User(id=int(r["id"]), username=r["username"], score=r["score"], currency=r["currency"])
            for r in rows
        ]

    def save_user(self, user: User) -> User:
        with self._conn() as conn:
            conn.execute(
                "UPDATE users SET username = ?, score = ?, currency = ? WHERE id = ?",
                (user.username, float(user.score), float(user.currency), int(user.id)),
            )
            conn.commit()
        return user

    def add_group(self, name: str, owner_id: int, member_ids: Iterable[int] = ()) -> Group:
        """Create a group (owner is always a member) together with its "today" list."""
        members = [int(owner_id)] + [int(m) for m in member_ids if int(m) != int(owner_id)]
        with self._conn() as conn:
            cur = conn.execute("INSERT INTO groups(name, owner_id) VALUES (?, ?)", (name, int(owner_id)))
            group_id = int(cur.lastrowid or 0)
            conn.executemany(
                "INSERT OR IGNORE INTO group_members(group_id, user_id) VALUES (?, ?)",
                [(group_id, m) for m in members],
            )
            conn.commit()
        self.add_list(TODAY_LIST_NAME, group_owner(group_id))
        return Group(id=group_id, name=name, owner_id=int(owner_id), member_ids=members)

    def _load_group(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Group:
        members = conn.execute(
            "SELECT user_id FROM group_members WHERE group_id = ? ORDER BY rowid ASC",
            (int(row["id"]),),
        ).fetchall()
        return Group(
            id=int(row["id"]),
            name=row["name"],
            owner_id=int(row["owner_id"]),
            member_ids=[int(m["user_id"]) for m in members],
        )

    def find_group(self, group_id: int) -> Group | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM groups WHERE id = ?", (int(group_id),)).fetchone()
            return self._load_group(conn, row) if row else None

    def find_groups_for_user(self, user_id: int) -> list[Group]:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT g.*
                FROM groups g
                JOIN group_members m ON m.group_id = g.id
                WHERE m.user_id = ?
                ORDER BY g.id ASC
                """,
                (int(user_id),),
            ).fetchall()
            return [self._load_group(conn, r) for r in rows]

    # ---- lists ----

    def add_list(self, name: str, owner: Owner) -> TaskList:
        with self._conn() as conn:
            cur = conn.execute("INSERT INTO lists(name, owner) VALUES (?, ?)", (name, owner.key))
            conn.commit()
            return TaskList(id=int(cur.lastrowid or 0), name=name, owner=owner)

    def find_list(self, list_id: int) -> TaskList | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM lists WHERE id = ?", (int(list_id),)).fetchone()
        return self._row_to_list(row) if row else None

    def find_today_list(self, owner: Owner) -> TaskList | None:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM lists WHERE owner = ? AND name = ? ORDER BY id ASC LIMIT 1",
                (owner.key, TODAY_LIST_NAME),
            ).fetchone()
        return self._row_to_list(row) if row else None

    # ---- notifications ----

    def add_notification(self, user_id: int, message: str, kind: str = "info") -> int:
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO notifications(user_id, message, kind, created_at) VALUES (?, ?, ?, ?)",
                (int(user_id), message, kind, datetime.now().isoformat()),
            )
            conn.commit()
            return int(cur.lastrowid or 0)

    def list_notifications(self, user_id: int, *, unread_only: bool = False) -> list[Notification]:
        sql = "SELECT * FROM notifications WHERE user_id = ?"
        if unread_only:
            sql += " AND is_read = 0"
        with self._conn() as conn:
            rows = conn.execute(sql + " ORDER BY id ASC", (int(user_id),)).fetchall()
        return [
            Notification(
                id=int(r["id"]),
                user_id=int(r["user_id"]),
                message=r["message"],
                kind=r["kind"],
                created=datetime.fromisoformat(r["created_at"]),
                is_read=bool(r["is_read"]),
            )
            for r in rows
        ]


def user_owner(user_id: int) -> Owner:
    return UserOwner(int(user_id))


def group_owner(group_id: int) -> Owner:
    return GroupOwner(int(group_id))


class StoreNotifier:
    """Notifier that drops messages into the store's in-app inbox."""

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    def notify(self, user_id: int, message: str, kind: str = "info") -> None:
        nid = self._store.add_notification(user_id, message, kind)
        logger.info("Notification id=%s user=%s kind=%s", nid, user_id, kind)
