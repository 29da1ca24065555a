"""Unit test fixtures: cache reset and engine components on a temp database."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest

from task_market_service.config import clear_settings_cache
from task_market_service.core.state import reset_app_state
from task_market_service.services.assignment_controller import AssignmentController
from task_market_service.services.billing import BillingCalculator
from task_market_service.services.clock import Clock
from task_market_service.services.completion_guard import CompletionGuard
from task_market_service.services.database import Database
from task_market_service.services.task_store import TaskStore
from task_market_service.services.worklog_ledger import WorklogLedger

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear settings cache and app state between tests."""
    clear_settings_cache()
    reset_app_state()
    yield
    clear_settings_cache()
    reset_app_state()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "task-market.db")


@pytest.fixture
def database(db_path: str) -> Iterator[Database]:
    db = Database(db_path)
    yield db
    db.close()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def store(database: Database, clock: Clock) -> TaskStore:
    return TaskStore(database, clock)


@pytest.fixture
def ledger(database: Database, store: TaskStore, clock: Clock) -> WorklogLedger:
    return WorklogLedger(database, store, clock)


@pytest.fixture
def billing() -> BillingCalculator:
    return BillingCalculator(Decimal(50))


@pytest.fixture
def messaging() -> AsyncMock:
    """Messaging client mock; task_assigned succeeds by default."""
    mock_messaging = AsyncMock()
    mock_messaging.task_assigned = AsyncMock(return_value=None)
    return mock_messaging


@pytest.fixture
def controller(store: TaskStore, clock: Clock, messaging: AsyncMock) -> AssignmentController:
    return AssignmentController(store, clock, messaging)


@pytest.fixture
def guard(
    store: TaskStore,
    ledger: WorklogLedger,
    billing: BillingCalculator,
    clock: Clock,
) -> CompletionGuard:
    return CompletionGuard(store, ledger, billing, clock)
