"""Async HTTP client for the messaging system."""

from __future__ import annotations

import httpx

from task_market_service.core.exceptions import ServiceError
from task_market_service.logging import get_logger


class MessagingClient:
    """Tells the messaging system that a task has an assignee, so chat can open."""

    def __init__(
        self,
        base_url: str,
        assignments_path: str,
        timeout_seconds: int,
    ) -> None:
        self._base_url = base_url
        self._assignments_path = assignments_path
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def task_assigned(self, task_id: str, assigned_to: str) -> None:
        """
        Announce an assignment.

        Raises:
            ServiceError: MESSAGING_SERVICE_UNAVAILABLE (502) on connection
                errors, timeouts or a non-2xx response
        """
        logger = get_logger(__name__)

        try:
            response = await self._client.post(
                self._assignments_path,
                json={"task_id": task_id, "assigned_to": assigned_to},
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Messaging service request failed",
                extra={"error": str(exc), "base_url": self._base_url, "task_id": task_id},
            )
            raise ServiceError(
                error="MESSAGING_SERVICE_UNAVAILABLE",
                message="Cannot connect to messaging service",
                status_code=502,
                details={},
            ) from exc

        if not response.is_success:
            logger.warning(
                "Messaging service unexpected status",
                extra={
                    "status_code": response.status_code,
                    "base_url": self._base_url,
                    "task_id": task_id,
                },
            )
            raise ServiceError(
                error="MESSAGING_SERVICE_UNAVAILABLE",
                message="Messaging service returned unexpected status",
                status_code=502,
                details={},
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
