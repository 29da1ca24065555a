"""Domain records shared by the stores, the engine components and the routers."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

TASK_STATUSES: tuple[str, ...] = ("open", "completed")
TASK_CATEGORIES: frozenset[str] = frozenset({"task", "companion"})


@dataclass(frozen=True)
class Identity:
    """Verified caller identity, as supplied by the identity provider."""

    subject: str
    email: str | None = None


@dataclass(frozen=True)
class Task:
    """A posted task. ``assigned_to`` is set once by accept and never cleared."""

    task_id: str
    requester: str
    assigned_to: str | None
    status: str
    title: str
    description: str
    category: str
    location_text: str
    estimated_minutes: int
    prepay_amount_cents: int
    is_immediate: bool
    scheduled_at: str | None
    created_at: str
    updated_at: str
    assigned_at: str | None
    completed_at: str | None

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WorklogEntry:
    """One clock-in/clock-out session. Open while ``clock_out_at`` is None."""

    entry_id: str
    task_id: str
    worker: str
    clock_in_at: str
    clock_out_at: str | None

    @property
    def is_open(self) -> bool:
        return self.clock_out_at is None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WorklogStatus:
    """Read-only aggregate over all sessions of one task."""

    task_id: str
    entries: list[WorklogEntry]
    total_minutes: int
    has_open: bool
