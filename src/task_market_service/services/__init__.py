"""Service layer components."""

from task_market_service.services.assignment_controller import AssignmentController
from task_market_service.services.billing import BillingCalculator
from task_market_service.services.clock import Clock
from task_market_service.services.completion_guard import CompletionGuard
from task_market_service.services.database import Database
from task_market_service.services.task_manager import TaskManager
from task_market_service.services.task_store import TaskStore
from task_market_service.services.token_validator import TokenValidator
from task_market_service.services.worklog_ledger import WorklogLedger

__all__ = [
    "AssignmentController",
    "BillingCalculator",
    "Clock",
    "CompletionGuard",
    "Database",
    "TaskManager",
    "TaskStore",
    "TokenValidator",
    "WorklogLedger",
]
