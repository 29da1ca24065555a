"""Time tracking endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from task_market_service.routers.validation import require_identity, require_task_manager
from task_market_service.schemas import WorklogEntryResponse, WorklogResponse

router = APIRouter()


@router.post("/tasks/{task_id}/clock-in", status_code=201)
async def clock_in(task_id: str, request: Request) -> JSONResponse:
    """Open a work session for the assigned worker."""
    caller = await require_identity(request)
    result = await require_task_manager().clock_in(task_id, caller)
    return JSONResponse(status_code=201, content=result)


@router.post("/tasks/{task_id}/clock-out", response_model=WorklogEntryResponse)
async def clock_out(task_id: str, request: Request) -> dict[str, Any]:
    """Close the caller's open work session."""
    caller = await require_identity(request)
    return await require_task_manager().clock_out(task_id, caller)


@router.get("/tasks/{task_id}/worklogs", response_model=WorklogResponse)
async def get_worklogs(task_id: str, request: Request) -> dict[str, Any]:
    """Work sessions, billable minutes and current cost of a task."""
    caller = await require_identity(request)
    return await require_task_manager().get_worklogs(task_id, caller)
