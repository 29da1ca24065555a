"""Health endpoint tests for the task market service."""

from __future__ import annotations

import pytest

from tests.helpers import REQUESTER
from tests.unit.routers.conftest import create_task


@pytest.mark.unit
async def test_health_returns_ok_with_correct_schema(client):
    """GET /health returns 200 with zeroed counts for every status."""
    response = await client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ok"
    assert isinstance(data["uptime_seconds"], (int, float))
    assert data["started_at"].endswith("Z")
    assert data["total_tasks"] == 0
    assert data["tasks_by_status"] == {"open": 0, "completed": 0}


@pytest.mark.unit
async def test_health_needs_no_authentication(client):
    response = await client.get("/health", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 200


@pytest.mark.unit
async def test_health_counts_tasks(client):
    for _ in range(3):
        assert (await create_task(client, REQUESTER)).status_code == 201

    data = (await client.get("/health")).json()
    assert data["total_tasks"] == 3
    assert data["tasks_by_status"] == {"open": 3, "completed": 0}


@pytest.mark.unit
async def test_health_post_not_allowed(client):
    response = await client.post("/health")
    assert response.status_code == 405
    assert response.json()["error"] == "METHOD_NOT_ALLOWED"
