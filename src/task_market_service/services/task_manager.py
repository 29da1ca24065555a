"""Business logic façade used by the routers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from task_market_service.models import TASK_STATUSES
from task_market_service.services.worklog_ledger import entry_minutes

if TYPE_CHECKING:
    from task_market_service.clients.messaging_client import MessagingClient
    from task_market_service.models import Identity, Task, WorklogEntry
    from task_market_service.services.assignment_controller import AssignmentController
    from task_market_service.services.billing import BillingCalculator
    from task_market_service.services.completion_guard import CompletionGuard
    from task_market_service.services.database import Database
    from task_market_service.services.task_store import TaskStore
    from task_market_service.services.worklog_ledger import WorklogLedger


class TaskManager:
    """
    Composes the task store, assignment controller, worklog ledger,
    billing calculator and completion guard behind one interface.

    Every method takes the verified caller identity; results are plain
    dicts ready for JSON serialization.
    """

    def __init__(
        self,
        database: Database,
        store: TaskStore,
        assignments: AssignmentController,
        ledger: WorklogLedger,
        billing: BillingCalculator,
        completion: CompletionGuard,
    ) -> None:
        self._db = database
        self._store = store
        self._assignments = assignments
        self._ledger = ledger
        self._billing = billing
        self._completion = completion

    def set_messaging_client(self, messaging_client: MessagingClient | None) -> None:
        self._assignments.set_messaging_client(messaging_client)

    def _task_to_response(self, task: Task) -> dict[str, Any]:
        response = task.to_dict()
        response["estimated_cost_cents"] = self._billing.estimate(task)
        return response

    @staticmethod
    def _entry_to_response(entry: WorklogEntry) -> dict[str, Any]:
        response = entry.to_dict()
        response["minutes"] = entry_minutes(entry)
        return response

    async def create_task(self, caller: Identity, data: dict[str, Any]) -> dict[str, Any]:
        task = self._store.create(caller, data)
        return self._task_to_response(task)

    async def get_task(self, task_id: str) -> dict[str, Any]:
        return self._task_to_response(self._store.get(task_id))

    async def list_tasks(
        self,
        caller: Identity,
        role: str,
        status: str | None,
    ) -> list[dict[str, Any]]:
        tasks = self._store.list_for(caller, role, status)
        return [self._task_to_response(task) for task in tasks]

    async def update_task(
        self,
        task_id: str,
        caller: Identity,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        task = self._store.update(task_id, patch, caller)
        return self._task_to_response(task)

    async def accept_task(self, task_id: str, caller: Identity) -> dict[str, Any]:
        task = await self._assignments.accept(task_id, caller)
        return self._task_to_response(task)

    async def clock_in(self, task_id: str, caller: Identity) -> dict[str, Any]:
        return self._entry_to_response(self._ledger.clock_in(task_id, caller))

    async def clock_out(self, task_id: str, caller: Identity) -> dict[str, Any]:
        return self._entry_to_response(self._ledger.clock_out(task_id, caller))

    async def get_worklogs(self, task_id: str, caller: Identity) -> dict[str, Any]:
        """Worklog aggregate with the cost the requester would owe right now."""
        worklog = self._ledger.status_for(task_id, caller)
        task = self._store.get(task_id)
        return {
            "task_id": task_id,
            "items": [self._entry_to_response(entry) for entry in worklog.entries],
            "total_minutes": worklog.total_minutes,
            "total_cost_cents": self._billing.cost(task, worklog.total_minutes),
            "has_open": worklog.has_open,
        }

    async def complete_task(self, task_id: str, caller: Identity) -> dict[str, Any]:
        """Complete the task and report the final billed amount."""
        task = self._completion.complete(task_id, caller)
        worklog = self._ledger.status(task_id)
        response = self._task_to_response(task)
        response["total_minutes"] = worklog.total_minutes
        response["total_cost_cents"] = self._billing.cost(task, worklog.total_minutes)
        return response

    def get_stats(self) -> dict[str, Any]:
        """Task counts for the health endpoint."""
        by_status = self._store.count_tasks_by_status()
        return {
            "total_tasks": self._store.count_tasks(),
            "tasks_by_status": {status: by_status.get(status, 0) for status in TASK_STATUSES},
        }

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()
