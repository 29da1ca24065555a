"""SQLite handle shared by the task store and the worklog ledger."""

from __future__ import annotations

import contextlib
import sqlite3
from pathlib import Path
from threading import RLock
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class Database:
    """
    Owns one SQLite connection and the schema for tasks and worklogs.

    Every state change in the engine is a single conditional statement
    (or one BEGIN IMMEDIATE transaction), so the invariants hold across
    independent handles opened on the same file, not just within this
    process. The lock only serializes use of this one connection.
    """

    def __init__(self, db_path: str) -> None:
        self._lock = RLock()
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(db_path, check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA journal_mode=WAL")
        self._db.execute("PRAGMA foreign_keys=ON")
        self._db.execute("PRAGMA busy_timeout=5000")
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            self._db.executescript(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    task_id TEXT PRIMARY KEY,
                    requester TEXT NOT NULL,
                    assigned_to TEXT,
                    status TEXT NOT NULL DEFAULT 'open'
                        CHECK (status IN ('open', 'completed')),
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    category TEXT NOT NULL,
                    location_text TEXT NOT NULL,
                    estimated_minutes INTEGER NOT NULL CHECK (estimated_minutes > 0),
                    prepay_amount_cents INTEGER NOT NULL CHECK (prepay_amount_cents >= 0),
                    is_immediate INTEGER NOT NULL,
                    scheduled_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    assigned_at TEXT,
                    completed_at TEXT
                );

                CREATE INDEX IF NOT EXISTS ix_tasks_requester
                    ON tasks (requester, created_at);

                CREATE INDEX IF NOT EXISTS ix_tasks_assigned_to
                    ON tasks (assigned_to, created_at);

                CREATE TABLE IF NOT EXISTS worklogs (
                    entry_id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(task_id),
                    worker TEXT NOT NULL,
                    clock_in_at TEXT NOT NULL,
                    clock_out_at TEXT
                );

                CREATE UNIQUE INDEX IF NOT EXISTS ux_worklogs_open_session
                    ON worklogs (task_id, worker)
                    WHERE clock_out_at IS NULL;

                CREATE INDEX IF NOT EXISTS ix_worklogs_task
                    ON worklogs (task_id, clock_in_at);
                """
            )
            self._db.commit()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block inside BEGIN IMMEDIATE.

        Commits on normal exit, rolls back and re-raises on any exception.
        """
        with self._lock:
            try:
                self._db.execute("BEGIN IMMEDIATE")
                yield self._db
                self._db.commit()
            except Exception:
                with contextlib.suppress(sqlite3.Error):
                    self._db.execute("ROLLBACK")
                raise

    def execute_write(self, sql: str, params: Sequence[Any]) -> int:
        """Execute one write statement, commit, and return the affected row count."""
        with self._lock:
            try:
                cursor = self._db.execute(sql, params)
                self._db.commit()
            except Exception:
                with contextlib.suppress(sqlite3.Error):
                    self._db.rollback()
                raise
        return int(cursor.rowcount)

    def fetch_one(self, sql: str, params: Sequence[Any]) -> sqlite3.Row | None:
        with self._lock:
            row: sqlite3.Row | None = self._db.execute(sql, params).fetchone()
        return row

    def fetch_all(self, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        with self._lock:
            rows = self._db.execute(sql, params).fetchall()
        return list(rows)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._db.close()
