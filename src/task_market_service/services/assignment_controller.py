"""Arbitration of concurrent accept attempts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from task_market_service.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ServiceError,
)
from task_market_service.logging import get_logger

if TYPE_CHECKING:
    from task_market_service.clients.messaging_client import MessagingClient
    from task_market_service.models import Identity, Task
    from task_market_service.services.clock import Clock
    from task_market_service.services.task_store import TaskStore


class AssignmentController:
    """Claims an open task for exactly one worker."""

    def __init__(
        self,
        store: TaskStore,
        clock: Clock,
        messaging_client: MessagingClient | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._messaging_client = messaging_client
        self._logger = get_logger(__name__)

    def set_messaging_client(self, messaging_client: MessagingClient | None) -> None:
        """Swap the messaging client (used when tests inject a mock)."""
        self._messaging_client = messaging_client

    def claim(self, task_id: str, caller: Identity) -> Task:
        """
        Assign the task to the caller with one conditional write.

        Of any number of concurrent claims on an open, unassigned task,
        exactly one succeeds.

        Error precedence when the write changes nothing:
        1. TASK_NOT_FOUND
        2. FORBIDDEN: caller posted the task
        3. INVALID_TRANSITION: task is completed
        4. TASK_ALREADY_ASSIGNED: another worker won
        """
        now = self._clock.now_iso()
        changed = self._store.update_task(
            task_id,
            {"assigned_to": caller.subject, "assigned_at": now, "updated_at": now},
            expected_status="open",
            guard="assigned_to IS NULL AND requester <> ?",
            guard_params=(caller.subject,),
        )
        if changed == 1:
            self._logger.info(
                "Task accepted",
                extra={"task_id": task_id, "assigned_to": caller.subject},
            )
            return self._store.get(task_id)

        current = self._store.find(task_id)
        if current is None:
            raise NotFoundError()
        if current.requester == caller.subject:
            raise ForbiddenError("Cannot accept your own task")
        if current.status != "open":
            raise InvalidTransitionError(
                InvalidTransitionError.NOT_OPEN,
                f"Cannot accept task in '{current.status}' status, must be 'open'",
            )
        raise ConflictError()

    async def accept(self, task_id: str, caller: Identity) -> Task:
        """Claim the task, then tell the messaging system who was assigned."""
        task = self.claim(task_id, caller)
        await self._notify_assigned(task)
        return task

    async def _notify_assigned(self, task: Task) -> None:
        """
        Report the assignment to the messaging system.

        Does NOT raise: the assignment is already committed.
        """
        if self._messaging_client is None or task.assigned_to is None:
            return
        try:
            await self._messaging_client.task_assigned(task.task_id, task.assigned_to)
        except ServiceError:
            self._logger.warning(
                "Assignment notification failed",
                extra={"task_id": task.task_id, "assigned_to": task.assigned_to},
            )
