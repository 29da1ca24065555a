"""Clock-in/clock-out sessions and the billable minutes derived from them."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

from task_market_service.core.exceptions import (
    AlreadyClockedInError,
    ClockError,
    ForbiddenError,
    InvalidTransitionError,
    NotClockedInError,
    NotFoundError,
)
from task_market_service.logging import get_logger
from task_market_service.models import WorklogEntry, WorklogStatus
from task_market_service.services.clock import format_timestamp, parse_timestamp

if TYPE_CHECKING:
    from task_market_service.models import Identity
    from task_market_service.services.clock import Clock
    from task_market_service.services.database import Database
    from task_market_service.services.task_store import TaskStore

_ENTRY_COLUMNS_SQL = "entry_id, task_id, worker, clock_in_at, clock_out_at"

_CLOCK_IN_SQL = (
    "INSERT INTO worklogs (" + _ENTRY_COLUMNS_SQL + ") "  # nosec B608
    "SELECT ?, task_id, ?, ?, NULL FROM tasks "
    "WHERE task_id = ? AND status = 'open' AND assigned_to = ?"
)

_MICROSECONDS_PER_MINUTE = 60 * 1_000_000


def entry_minutes(entry: WorklogEntry) -> int:
    """
    Billable minutes of one session.

    Elapsed time rounded up to the next whole minute. Open and
    zero-length sessions count 0.
    """
    if entry.clock_out_at is None:
        return 0
    elapsed = parse_timestamp(entry.clock_out_at) - parse_timestamp(entry.clock_in_at)
    microseconds = elapsed // timedelta(microseconds=1)
    if microseconds <= 0:
        return 0
    return -(-microseconds // _MICROSECONDS_PER_MINUTE)


class WorklogLedger:
    """Records work sessions per task and worker."""

    def __init__(self, database: Database, store: TaskStore, clock: Clock) -> None:
        self._db = database
        self._store = store
        self._clock = clock
        self._logger = get_logger(__name__)

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> WorklogEntry:
        return WorklogEntry(
            entry_id=str(row["entry_id"]),
            task_id=str(row["task_id"]),
            worker=str(row["worker"]),
            clock_in_at=str(row["clock_in_at"]),
            clock_out_at=row["clock_out_at"],
        )

    def clock_in(self, task_id: str, caller: Identity) -> WorklogEntry:
        """
        Open a work session for the assigned worker.

        The insert only happens if the task is open and assigned to the
        caller; the partial unique index rejects a second open session.

        Error precedence:
        1. ALREADY_CLOCKED_IN
        2. TASK_NOT_FOUND
        3. INVALID_TRANSITION: task is not open
        4. FORBIDDEN: caller is not the assignee
        """
        entry_id = f"wl-{uuid.uuid4()}"
        now = self._clock.now_iso()
        try:
            inserted = self._db.execute_write(
                _CLOCK_IN_SQL,
                (entry_id, caller.subject, now, task_id, caller.subject),
            )
        except sqlite3.IntegrityError as exc:
            raise AlreadyClockedInError() from exc

        if inserted == 0:
            task = self._store.find(task_id)
            if task is None:
                raise NotFoundError()
            if task.status != "open":
                raise InvalidTransitionError(
                    InvalidTransitionError.NOT_OPEN,
                    f"Cannot clock in on task in '{task.status}' status, must be 'open'",
                )
            raise ForbiddenError("Only the assigned worker can clock in")

        self._logger.info(
            "Clocked in",
            extra={"task_id": task_id, "worker": caller.subject, "entry_id": entry_id},
        )
        return WorklogEntry(
            entry_id=entry_id,
            task_id=task_id,
            worker=caller.subject,
            clock_in_at=now,
            clock_out_at=None,
        )

    def clock_out(self, task_id: str, caller: Identity) -> WorklogEntry:
        """
        Close the caller's open session on this task.

        Raises:
            NotFoundError: no such task
            NotClockedInError: the caller has no open session
            ClockError: the clock reads earlier than the session start
        """
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT " + _ENTRY_COLUMNS_SQL + " FROM worklogs "  # nosec B608
                "WHERE task_id = ? AND worker = ? AND clock_out_at IS NULL",
                (task_id, caller.subject),
            ).fetchone()
            if row is None:
                task_exists = conn.execute(
                    "SELECT 1 FROM tasks WHERE task_id = ?", (task_id,)
                ).fetchone()
                if task_exists is None:
                    raise NotFoundError()
                raise NotClockedInError()

            entry = self._row_to_entry(row)
            now = self._clock.now()
            if now < parse_timestamp(entry.clock_in_at):
                raise ClockError("Clock-out time is earlier than clock-in time")

            clock_out_at = format_timestamp(now)
            conn.execute(
                "UPDATE worklogs SET clock_out_at = ? WHERE entry_id = ? AND clock_out_at IS NULL",
                (clock_out_at, entry.entry_id),
            )

        closed = WorklogEntry(
            entry_id=entry.entry_id,
            task_id=entry.task_id,
            worker=entry.worker,
            clock_in_at=entry.clock_in_at,
            clock_out_at=clock_out_at,
        )
        self._logger.info(
            "Clocked out",
            extra={
                "task_id": task_id,
                "worker": caller.subject,
                "entry_id": entry.entry_id,
                "minutes": entry_minutes(closed),
            },
        )
        return closed

    def entries(self, task_id: str) -> list[WorklogEntry]:
        """All sessions of a task, oldest first."""
        rows = self._db.fetch_all(
            "SELECT " + _ENTRY_COLUMNS_SQL + " FROM worklogs "  # nosec B608
            "WHERE task_id = ? ORDER BY clock_in_at, entry_id",
            (task_id,),
        )
        return [self._row_to_entry(row) for row in rows]

    def status(self, task_id: str) -> WorklogStatus:
        """
        Aggregate the sessions of a task.

        has_open is true if any session on the task is open, whoever
        opened it. Raises NotFoundError for an unknown task.
        """
        self._store.get(task_id)
        entries = self.entries(task_id)
        return WorklogStatus(
            task_id=task_id,
            entries=entries,
            total_minutes=sum(entry_minutes(entry) for entry in entries),
            has_open=any(entry.is_open for entry in entries),
        )

    def status_for(self, task_id: str, caller: Identity) -> WorklogStatus:
        """Aggregate the sessions of a task for its requester or assignee."""
        task = self._store.get(task_id)
        if caller.subject not in (task.requester, task.assigned_to):
            raise ForbiddenError("Only the requester or the assigned worker can view worklogs")
        return self.status(task_id)
