"""API routers."""

from task_market_service.routers import health, tasks, worklogs

__all__ = ["health", "tasks", "worklogs"]
