"""The terminal open -> completed transition."""

from __future__ import annotations

from typing import TYPE_CHECKING

from task_market_service.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from task_market_service.logging import get_logger

if TYPE_CHECKING:
    from task_market_service.models import Identity, Task
    from task_market_service.services.billing import BillingCalculator
    from task_market_service.services.clock import Clock
    from task_market_service.services.task_store import TaskStore
    from task_market_service.services.worklog_ledger import WorklogLedger

# Evaluated in the same statement that flips the status.
_COMPLETION_GUARD_SQL = (
    "assigned_to IS NOT NULL"
    " AND ? IN (requester, assigned_to)"
    " AND NOT EXISTS (SELECT 1 FROM worklogs w"
    " WHERE w.task_id = tasks.task_id AND w.clock_out_at IS NULL)"
    " AND EXISTS (SELECT 1 FROM worklogs w"
    " WHERE w.task_id = tasks.task_id AND w.worker = tasks.assigned_to"
    " AND w.clock_out_at IS NOT NULL AND w.clock_out_at > w.clock_in_at)"
)


class CompletionGuard:
    """Completes a task only once work has been logged and every session is closed."""

    def __init__(
        self,
        store: TaskStore,
        ledger: WorklogLedger,
        billing: BillingCalculator,
        clock: Clock,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._billing = billing
        self._clock = clock
        self._logger = get_logger(__name__)

    def complete(self, task_id: str, caller: Identity) -> Task:
        """
        Mark the task completed.

        Error precedence when the guarded write changes nothing:
        1. TASK_NOT_FOUND
        2. INVALID_TRANSITION (not_open): already completed
        3. FORBIDDEN: caller is neither requester nor assignee
        4. INVALID_TRANSITION (not_assigned)
        5. INVALID_TRANSITION (session_open)
        6. INVALID_TRANSITION (no_work_logged)
        """
        now = self._clock.now_iso()
        changed = self._store.update_task(
            task_id,
            {"status": "completed", "completed_at": now, "updated_at": now},
            expected_status="open",
            guard=_COMPLETION_GUARD_SQL,
            guard_params=(caller.subject,),
        )
        if changed == 0:
            self._raise_rejection(task_id, caller)

        task = self._store.get(task_id)
        worklog = self._ledger.status(task_id)
        self._logger.info(
            "Task completed",
            extra={
                "task_id": task_id,
                "completed_by": caller.subject,
                "total_minutes": worklog.total_minutes,
                "total_cost_cents": self._billing.cost(task, worklog.total_minutes),
            },
        )
        return task

    def _raise_rejection(self, task_id: str, caller: Identity) -> None:
        task = self._store.find(task_id)
        if task is None:
            raise NotFoundError()
        if task.status != "open":
            raise InvalidTransitionError(
                InvalidTransitionError.NOT_OPEN,
                f"Cannot complete task in '{task.status}' status, must be 'open'",
            )
        if caller.subject not in (task.requester, task.assigned_to):
            raise ForbiddenError("Only the requester or the assigned worker can complete this task")
        if not task.is_assigned:
            raise InvalidTransitionError(
                InvalidTransitionError.NOT_ASSIGNED,
                "Task has not been accepted by a worker",
            )
        if self._ledger.status(task_id).has_open:
            raise InvalidTransitionError(
                InvalidTransitionError.SESSION_OPEN,
                "A work session is still open",
            )
        raise InvalidTransitionError(
            InvalidTransitionError.NO_WORK_LOGGED,
            "No work has been logged on this task",
        )
