"""Router test fixtures with mocked identity and messaging services."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from task_market_service.app import create_app
from task_market_service.config import clear_settings_cache
from task_market_service.core.lifespan import lifespan
from task_market_service.core.state import get_app_state, reset_app_state
from tests.helpers import auth_headers, config_yaml, fake_verify_token, task_fields

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from task_market_service.models import Identity


# ---------------------------------------------------------------------------
# App + client fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
async def app(tmp_path: Path) -> AsyncIterator[Any]:
    """Create a test app with temp database and mocked external services."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(config_yaml(str(tmp_path / "test.db"), str(tmp_path / "logs")))

    old_config = os.environ.get("CONFIG_PATH")
    os.environ["CONFIG_PATH"] = str(config_path)

    clear_settings_cache()
    reset_app_state()

    test_app = create_app()
    async with lifespan(test_app):
        state = get_app_state()

        # Mock identity client: tok-<subject> verifies as <subject>
        mock_identity = AsyncMock()
        mock_identity.close = AsyncMock()
        mock_identity.verify_token = AsyncMock(side_effect=fake_verify_token)
        state.identity_client = mock_identity

        # Mock messaging client: assignment notifications succeed
        mock_messaging = AsyncMock()
        mock_messaging.close = AsyncMock()
        mock_messaging.task_assigned = AsyncMock(return_value=None)
        state.messaging_client = mock_messaging

        yield test_app

    reset_app_state()
    clear_settings_cache()
    if old_config is None:
        os.environ.pop("CONFIG_PATH", None)
    else:
        os.environ["CONFIG_PATH"] = old_config


@pytest.fixture
async def client(app: Any) -> AsyncIterator[AsyncClient]:
    """Create an async HTTP client for the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def mock_identity_unavailable(app: Any) -> None:
    """Configure the identity mock to simulate service unavailability."""
    state = get_app_state()
    state.identity_client.verify_token = AsyncMock(
        side_effect=ConnectionError("Identity service unreachable")
    )


# ---------------------------------------------------------------------------
# Task lifecycle helper functions
# ---------------------------------------------------------------------------
async def create_task(client: AsyncClient, requester: Identity, **overrides: Any) -> Any:
    """Create a task via POST /tasks and return the response."""
    return await client.post("/tasks", json=task_fields(**overrides), headers=auth_headers(requester))


async def post_action(client: AsyncClient, caller: Identity, task_id: str, action: str) -> Any:
    """POST /tasks/{task_id}/{action} (accept, clock-in, clock-out, complete) as caller."""
    return await client.post(f"/tasks/{task_id}/{action}", headers=auth_headers(caller))
