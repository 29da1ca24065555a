"""Task lifecycle endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from task_market_service.routers.validation import (
    parse_json_body,
    require_identity,
    require_task_manager,
)
from task_market_service.schemas import CompletionResponse, TaskListResponse, TaskResponse

router = APIRouter()


# ---------------------------------------------------------------------------
# POST /tasks: create task
# ---------------------------------------------------------------------------


@router.post("/tasks", status_code=201)
async def create_task(request: Request) -> JSONResponse:
    """Post a new open task owned by the caller."""
    caller = await require_identity(request)
    body = await request.body()
    data = {} if body == b"" else parse_json_body(body)

    result = await require_task_manager().create_task(caller, data)
    return JSONResponse(status_code=201, content=result)


# ---------------------------------------------------------------------------
# GET /tasks: the caller's own tasks (MUST be before GET /tasks/{task_id})
# ---------------------------------------------------------------------------


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(request: Request) -> dict[str, Any]:
    """List tasks the caller posted (role=requester) or works on (role=worker)."""
    caller = await require_identity(request)
    role = request.query_params.get("role", "requester")
    status = request.query_params.get("status")

    tasks = await require_task_manager().list_tasks(caller, role, status)
    return {"tasks": tasks}


# ---------------------------------------------------------------------------
# GET/PATCH /tasks/{task_id}
# ---------------------------------------------------------------------------


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str, request: Request) -> dict[str, Any]:
    """Get a single task."""
    await require_identity(request)
    return await require_task_manager().get_task(task_id)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(task_id: str, request: Request) -> dict[str, Any]:
    """Edit an open task. Only the requester may edit."""
    caller = await require_identity(request)
    body = await request.body()
    patch = {} if body == b"" else parse_json_body(body)

    return await require_task_manager().update_task(task_id, caller, patch)


# ---------------------------------------------------------------------------
# Lifecycle transitions
# ---------------------------------------------------------------------------


@router.post("/tasks/{task_id}/accept", response_model=TaskResponse)
async def accept_task(task_id: str, request: Request) -> dict[str, Any]:
    """Claim an open, unassigned task for the caller."""
    caller = await require_identity(request)
    return await require_task_manager().accept_task(task_id, caller)


@router.post("/tasks/{task_id}/complete", response_model=CompletionResponse)
async def complete_task(task_id: str, request: Request) -> dict[str, Any]:
    """Complete the task once work is logged and no session is open."""
    caller = await require_identity(request)
    return await require_task_manager().complete_task(task_id, caller)
