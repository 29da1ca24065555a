"""Application lifecycle management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from task_market_service.clients.identity_client import IdentityClient
from task_market_service.clients.messaging_client import MessagingClient
from task_market_service.config import get_settings
from task_market_service.core.state import init_app_state
from task_market_service.logging import get_logger, setup_logging
from task_market_service.services.assignment_controller import AssignmentController
from task_market_service.services.billing import BillingCalculator
from task_market_service.services.clock import Clock
from task_market_service.services.completion_guard import CompletionGuard
from task_market_service.services.database import Database
from task_market_service.services.task_manager import TaskManager
from task_market_service.services.task_store import TaskStore
from task_market_service.services.token_validator import TokenValidator
from task_market_service.services.worklog_ledger import WorklogLedger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    # === STARTUP ===
    settings = get_settings()

    setup_logging(settings.logging.level, settings.service.name, settings.logging.directory)
    logger = get_logger(__name__)

    state = init_app_state()

    identity_client = IdentityClient(
        base_url=settings.identity.base_url,
        verify_token_path=settings.identity.verify_token_path,
        timeout_seconds=settings.identity.timeout_seconds,
    )
    state.identity_client = identity_client
    state.token_validator = TokenValidator(identity_client=identity_client)

    messaging_client = MessagingClient(
        base_url=settings.messaging.base_url,
        assignments_path=settings.messaging.assignments_path,
        timeout_seconds=settings.messaging.timeout_seconds,
    )

    db_path = settings.database.path
    database = Database(db_path)
    clock = Clock()
    store = TaskStore(database, clock)
    ledger = WorklogLedger(database, store, clock)
    billing = BillingCalculator(settings.billing.rate_per_minute_cents)
    task_manager = TaskManager(
        database=database,
        store=store,
        assignments=AssignmentController(store, clock, messaging_client),
        ledger=ledger,
        billing=billing,
        completion=CompletionGuard(store, ledger, billing, clock),
    )
    state.task_manager = task_manager
    state.messaging_client = messaging_client

    logger.info(
        "Service starting",
        extra={
            "service": settings.service.name,
            "version": settings.service.version,
            "port": settings.server.port,
            "db_path": db_path,
            "identity_base_url": settings.identity.base_url,
            "messaging_base_url": settings.messaging.base_url,
            "rate_per_minute_cents": str(billing.rate_per_minute_cents),
        },
    )

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Service shutting down", extra={"uptime_seconds": state.uptime_seconds})

    task_manager.close()

    await identity_client.close()
    await messaging_client.close()
