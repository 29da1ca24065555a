"""Pydantic response models for the API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    model_config = ConfigDict(extra="forbid")
    status: Literal["ok"]
    uptime_seconds: float
    started_at: str
    total_tasks: int
    tasks_by_status: dict[str, int]


class TaskResponse(BaseModel):
    """Full task response model."""

    model_config = ConfigDict(extra="forbid")
    task_id: str
    requester: str
    assigned_to: str | None
    status: Literal["open", "completed"]
    title: str
    description: str
    category: Literal["task", "companion"]
    location_text: str
    estimated_minutes: int
    prepay_amount_cents: int
    is_immediate: bool
    scheduled_at: str | None
    created_at: str
    updated_at: str
    assigned_at: str | None
    completed_at: str | None
    estimated_cost_cents: int


class TaskListResponse(BaseModel):
    """Response model for GET /tasks."""

    model_config = ConfigDict(extra="forbid")
    tasks: list[TaskResponse]


class CompletionResponse(TaskResponse):
    """Response model for POST /tasks/{task_id}/complete."""

    total_minutes: int
    total_cost_cents: int


class WorklogEntryResponse(BaseModel):
    """One work session."""

    model_config = ConfigDict(extra="forbid")
    entry_id: str
    task_id: str
    worker: str
    clock_in_at: str
    clock_out_at: str | None
    minutes: int


class WorklogResponse(BaseModel):
    """Response model for GET /tasks/{task_id}/worklogs."""

    model_config = ConfigDict(extra="forbid")
    task_id: str
    items: list[WorklogEntryResponse]
    total_minutes: int
    total_cost_cents: int
    has_open: bool
