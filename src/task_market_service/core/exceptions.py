"""Service error types and the exception handlers that render them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from task_market_service.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request
    from starlette.types import ExceptionHandler


class ServiceError(Exception):
    """
    Base error carrying a machine-readable code and an HTTP status.

    Rendered as ``{"error": code, "message": ..., "details": {...}}``.
    """

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details: dict[str, Any] = details if details is not None else {}


class ValidationError(ServiceError):
    """Malformed input. The message is safe to show to the caller verbatim."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__("VALIDATION_ERROR", message, 400, details)


class NotFoundError(ServiceError):
    """Unknown task id."""

    def __init__(self, message: str = "Task not found") -> None:
        super().__init__("TASK_NOT_FOUND", message, 404)


class ForbiddenError(ServiceError):
    """Authenticated caller is not permitted to perform the operation."""

    def __init__(self, message: str) -> None:
        super().__init__("FORBIDDEN", message, 403)


class ConflictError(ServiceError):
    """Lost a race: another worker already claimed the task."""

    def __init__(self, message: str = "Task has already been accepted by another worker") -> None:
        super().__init__("TASK_ALREADY_ASSIGNED", message, 409)


class InvalidTransitionError(ServiceError):
    """Operation is not legal in the task's current state."""

    NOT_OPEN = "not_open"
    NOT_ASSIGNED = "not_assigned"
    SESSION_OPEN = "session_open"
    NO_WORK_LOGGED = "no_work_logged"

    def __init__(self, reason: str, message: str) -> None:
        super().__init__("INVALID_TRANSITION", message, 409, {"reason": reason})
        self.reason = reason


class AlreadyClockedInError(ServiceError):
    """The worker already has an open session on this task."""

    def __init__(self) -> None:
        super().__init__("ALREADY_CLOCKED_IN", "A work session is already open", 409)


class NotClockedInError(ServiceError):
    """The worker has no open session on this task."""

    def __init__(self) -> None:
        super().__init__("NOT_CLOCKED_IN", "No open work session to clock out of", 409)


class ClockError(ServiceError):
    """Clock-out time precedes clock-in time."""

    def __init__(self, message: str) -> None:
        super().__init__("CLOCK_ERROR", message, 409)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle ServiceError exceptions."""
    logger = get_logger(__name__)
    logger.warning(
        "Service error",
        extra={
            "error_code": exc.error,
            "status_code": exc.status_code,
            "path": str(request.url.path),
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": exc.message, "details": exc.details},
    )


async def unhandled_exception_handler(request: Request, _exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = get_logger(__name__)
    logger.exception("Unhandled exception", extra={"path": str(request.url.path)})
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": {},
        },
    )


async def http_exception_handler(
    _request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle Starlette HTTP exceptions (e.g., 405 from router)."""
    if exc.status_code == 405:
        return JSONResponse(
            status_code=405,
            content={
                "error": "METHOD_NOT_ALLOWED",
                "message": "Method not allowed",
                "details": {},
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP_ERROR",
            "message": str(exc.detail),
            "details": {},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the app."""
    app.add_exception_handler(ServiceError, cast("ExceptionHandler", service_error_handler))
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.add_exception_handler(
        StarletteHTTPException,
        cast("ExceptionHandler", http_exception_handler),
    )
