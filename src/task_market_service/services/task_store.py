"""Task persistence, field validation, and conditional task updates."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from task_market_service.logging import get_logger
from task_market_service.models import TASK_CATEGORIES, TASK_STATUSES, Task
from task_market_service.services.clock import format_timestamp

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Sequence

    from task_market_service.models import Identity
    from task_market_service.services.clock import Clock
    from task_market_service.services.database import Database

_MAX_TITLE_LENGTH = 200
_MAX_DESCRIPTION_LENGTH = 10000
_MAX_LOCATION_LENGTH = 1000
# Largest value an SQLite INTEGER column holds.
_MAX_STORED_INT = 2**63 - 1

# Fields a requester supplies on create and may change on update.
EDITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "category",
        "location_text",
        "estimated_minutes",
        "prepay_amount_cents",
        "is_immediate",
        "scheduled_at",
    }
)

_TASK_COLUMNS: tuple[str, ...] = (
    "task_id",
    "requester",
    "assigned_to",
    "status",
    "title",
    "description",
    "category",
    "location_text",
    "estimated_minutes",
    "prepay_amount_cents",
    "is_immediate",
    "scheduled_at",
    "created_at",
    "updated_at",
    "assigned_at",
    "completed_at",
)
_TASK_COLUMNS_SQL = ", ".join(_TASK_COLUMNS)
_TASK_INSERT_SQL = (
    "INSERT INTO tasks (" + _TASK_COLUMNS_SQL + ") VALUES ("  # nosec B608
    + ", ".join("?" for _ in _TASK_COLUMNS)
    + ")"
)
_TASK_SELECT_BASE_SQL = "SELECT " + _TASK_COLUMNS_SQL + " FROM tasks"  # nosec B608


def _is_int(value: object) -> bool:
    """Check if value is an integer (not float, not bool)."""
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_text(fields: dict[str, Any], name: str, max_length: int) -> str:
    value = fields.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", {"field": name})
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(
            f"{name} must not exceed {max_length} characters",
            {"field": name},
        )
    return value


def _parse_scheduled_at(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("scheduled_at must be an ISO 8601 timestamp", {"field": "scheduled_at"})
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(
            "scheduled_at must be an ISO 8601 timestamp",
            {"field": "scheduled_at"},
        ) from exc
    if parsed.tzinfo is None:
        raise ValidationError(
            "scheduled_at must include a timezone offset",
            {"field": "scheduled_at"},
        )
    try:
        return format_timestamp(parsed)
    except OverflowError as exc:
        raise ValidationError(
            "scheduled_at is out of range",
            {"field": "scheduled_at"},
        ) from exc


def validate_task_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Validate and normalize requester-supplied task fields.

    Returns a dict holding exactly EDITABLE_FIELDS. String fields are
    stripped; category defaults to "task"; prepay defaults to 0.

    Raises:
        ValidationError: unknown field, blank title, non-positive or
            oversized estimated_minutes, negative or oversized prepay,
            unknown category, an out-of-range scheduled_at, or an
            is_immediate/scheduled_at pair that is not exactly one of the two.
    """
    unknown = sorted(set(fields) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown or read-only field: {unknown[0]}", {"field": unknown[0]})

    title_obj = fields.get("title")
    if not isinstance(title_obj, str) or not title_obj.strip():
        raise ValidationError("title is required", {"field": "title"})
    title = title_obj.strip()
    if len(title) > _MAX_TITLE_LENGTH:
        raise ValidationError(
            f"title must not exceed {_MAX_TITLE_LENGTH} characters",
            {"field": "title"},
        )

    description = _optional_text(fields, "description", _MAX_DESCRIPTION_LENGTH)
    location_text = _optional_text(fields, "location_text", _MAX_LOCATION_LENGTH)

    category = _optional_text(fields, "category", 32) or "task"
    if category not in TASK_CATEGORIES:
        raise ValidationError(
            f"category must be one of {sorted(TASK_CATEGORIES)}",
            {"field": "category"},
        )

    estimated_minutes = fields.get("estimated_minutes")
    if (
        not _is_int(estimated_minutes)
        or estimated_minutes <= 0  # type: ignore[operator]
        or estimated_minutes > _MAX_STORED_INT  # type: ignore[operator]
    ):
        raise ValidationError(
            "estimated_minutes must be a positive integer",
            {"field": "estimated_minutes"},
        )

    prepay = fields.get("prepay_amount_cents", 0)
    if prepay is None:
        prepay = 0
    if not _is_int(prepay) or prepay < 0 or prepay > _MAX_STORED_INT:
        raise ValidationError(
            "prepay_amount_cents must be a non-negative integer",
            {"field": "prepay_amount_cents"},
        )

    is_immediate = fields.get("is_immediate", False)
    if not isinstance(is_immediate, bool):
        raise ValidationError("is_immediate must be a boolean", {"field": "is_immediate"})

    scheduled_raw = fields.get("scheduled_at")
    if is_immediate and scheduled_raw is not None:
        raise ValidationError(
            "scheduled_at must be empty for an immediate task",
            {"field": "scheduled_at"},
        )
    if not is_immediate and scheduled_raw is None:
        raise ValidationError(
            "scheduled_at is required unless the task is immediate",
            {"field": "scheduled_at"},
        )
    scheduled_at = None if is_immediate else _parse_scheduled_at(scheduled_raw)

    return {
        "title": title,
        "description": description,
        "category": category,
        "location_text": location_text,
        "estimated_minutes": estimated_minutes,
        "prepay_amount_cents": prepay,
        "is_immediate": is_immediate,
        "scheduled_at": scheduled_at,
    }


class TaskStore:
    """SQLite-backed task storage. Owns the open/completed state of every task."""

    def __init__(self, database: Database, clock: Clock) -> None:
        self._db = database
        self._clock = clock
        self._logger = get_logger(__name__)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            task_id=str(row["task_id"]),
            requester=str(row["requester"]),
            assigned_to=row["assigned_to"],
            status=str(row["status"]),
            title=str(row["title"]),
            description=str(row["description"]),
            category=str(row["category"]),
            location_text=str(row["location_text"]),
            estimated_minutes=int(row["estimated_minutes"]),
            prepay_amount_cents=int(row["prepay_amount_cents"]),
            is_immediate=bool(row["is_immediate"]),
            scheduled_at=row["scheduled_at"],
            created_at=str(row["created_at"]),
            updated_at=str(row["updated_at"]),
            assigned_at=row["assigned_at"],
            completed_at=row["completed_at"],
        )

    def create(self, requester: Identity, fields: dict[str, Any]) -> Task:
        """
        Create an open, unassigned task owned by the requester.

        Raises:
            ValidationError: see validate_task_fields
        """
        normalized = validate_task_fields(fields)
        now = self._clock.now_iso()
        row: dict[str, Any] = {
            "task_id": f"t-{uuid.uuid4()}",
            "requester": requester.subject,
            "assigned_to": None,
            "status": "open",
            **normalized,
            "is_immediate": int(normalized["is_immediate"]),
            "created_at": now,
            "updated_at": now,
            "assigned_at": None,
            "completed_at": None,
        }
        self._db.execute_write(_TASK_INSERT_SQL, [row[column] for column in _TASK_COLUMNS])
        self._logger.info(
            "Task created",
            extra={"task_id": row["task_id"], "requester": requester.subject},
        )
        return self.get(row["task_id"])

    def find(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None."""
        row = self._db.fetch_one(_TASK_SELECT_BASE_SQL + " WHERE task_id = ?", (task_id,))
        if row is None:
            return None
        return self._row_to_task(row)

    def get(self, task_id: str) -> Task:
        """
        Fetch a task by ID.

        Raises:
            NotFoundError: no task with this ID
        """
        task = self.find(task_id)
        if task is None:
            raise NotFoundError()
        return task

    def update(self, task_id: str, patch: dict[str, Any], caller: Identity) -> Task:
        """
        Apply a requester edit to an open task.

        Error precedence:
        1. VALIDATION_ERROR: patch names a read-only or unknown field
        2. TASK_NOT_FOUND
        3. INVALID_TRANSITION: task is not open
        4. FORBIDDEN: caller is not the requester
        5. VALIDATION_ERROR: merged fields are invalid
        """
        unknown = sorted(set(patch) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Field '{unknown[0]}' cannot be changed",
                {"field": unknown[0]},
            )

        task = self.get(task_id)
        if task.status != "open":
            raise InvalidTransitionError(
                InvalidTransitionError.NOT_OPEN,
                f"Cannot edit task in '{task.status}' status, must be 'open'",
            )
        if caller.subject != task.requester:
            raise ForbiddenError("Only the requester can edit this task")

        merged = {field: getattr(task, field) for field in EDITABLE_FIELDS}
        merged.update(patch)
        if patch.get("is_immediate") is True and "scheduled_at" not in patch:
            merged["scheduled_at"] = None
        if patch.get("scheduled_at") is not None and "is_immediate" not in patch:
            merged["is_immediate"] = False
        normalized = validate_task_fields(merged)
        normalized["is_immediate"] = int(normalized["is_immediate"])
        normalized["updated_at"] = self._clock.now_iso()

        changed = self.update_task(
            task_id,
            normalized,
            expected_status="open",
            guard="requester = ?",
            guard_params=(caller.subject,),
        )
        if changed == 0:
            # Completed between our read and the conditional write.
            raise InvalidTransitionError(
                InvalidTransitionError.NOT_OPEN,
                "Task is no longer open",
            )
        return self.get(task_id)

    def update_task(
        self,
        task_id: str,
        updates: dict[str, Any],
        *,
        expected_status: str | None,
        guard: str | None = None,
        guard_params: Sequence[Any] = (),
    ) -> int:
        """
        Conditionally update task columns in one statement.

        The row changes only if it still has expected_status and satisfies
        the optional SQL guard. Returns the number of affected rows (0 or 1).
        """
        if len(updates) == 0:
            return 0

        if any(column not in _TASK_COLUMNS for column in updates):
            msg = "Attempted to update unknown task column"
            raise ValueError(msg)

        set_clause = ", ".join(f"{column} = ?" for column in updates)
        params: list[object] = list(updates.values())

        query = "UPDATE tasks SET " + set_clause + " WHERE task_id = ?"  # nosec B608
        params.append(task_id)
        if expected_status is not None:
            query += " AND status = ?"
            params.append(expected_status)
        if guard is not None:
            query += " AND (" + guard + ")"
            params.extend(guard_params)

        return self._db.execute_write(query, params)

    def list_for(self, caller: Identity, role: str, status: str | None) -> list[Task]:
        """
        List the caller's own tasks, newest first.

        role "requester" lists tasks the caller posted; role "worker" lists
        tasks assigned to the caller. status optionally narrows the result.
        """
        if role == "requester":
            clauses = ["requester = ?"]
        elif role == "worker":
            clauses = ["assigned_to = ?"]
        else:
            raise ValidationError("role must be 'requester' or 'worker'", {"field": "role"})
        params: list[object] = [caller.subject]

        if status is not None:
            if status not in TASK_STATUSES:
                raise ValidationError(
                    f"status must be one of {list(TASK_STATUSES)}",
                    {"field": "status"},
                )
            clauses.append("status = ?")
            params.append(status)

        query = (
            _TASK_SELECT_BASE_SQL + " WHERE " + " AND ".join(clauses) + " ORDER BY created_at DESC"
        )
        return [self._row_to_task(row) for row in self._db.fetch_all(query, params)]

    def count_tasks(self) -> int:
        """Count total tasks."""
        row = self._db.fetch_one("SELECT COUNT(*) FROM tasks", ())
        return int(row[0]) if row is not None else 0

    def count_tasks_by_status(self) -> dict[str, int]:
        """Count tasks per status; every status is present, zero if unused."""
        counts = dict.fromkeys(TASK_STATUSES, 0)
        for row in self._db.fetch_all("SELECT status, COUNT(*) FROM tasks GROUP BY status", ()):
            counts[str(row[0])] = int(row[1])
        return counts
