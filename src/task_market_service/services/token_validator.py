"""Resolves bearer tokens into caller identities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import ServiceError
from task_market_service.models import Identity

if TYPE_CHECKING:
    from task_market_service.clients.identity_client import IdentityClient


def _unauthorized(message: str) -> ServiceError:
    return ServiceError("UNAUTHORIZED", message, 401, {})


class TokenValidator:
    """Verifies bearer tokens with the identity provider."""

    def __init__(self, identity_client: IdentityClient) -> None:
        self._identity_client = identity_client

    def set_identity_client(self, identity_client: IdentityClient) -> None:
        self._identity_client = identity_client

    async def authenticate(self, token: str) -> Identity:
        """
        Verify a bearer token and return the caller's identity.

        Raises:
            ServiceError: UNAUTHORIZED (401) for an empty, rejected, or
                subject-less token; IDENTITY_SERVICE_UNAVAILABLE (502) when
                the provider cannot be reached
        """
        if not token:
            raise _unauthorized("Bearer token must not be empty")

        result: Any
        try:
            result = await self._identity_client.verify_token(token)
        except ServiceError:
            raise
        except Exception as exc:
            raise ServiceError(
                "IDENTITY_SERVICE_UNAVAILABLE",
                "Cannot connect to identity service",
                502,
                {},
            ) from exc

        if not isinstance(result, dict):
            raise _unauthorized("Token verification failed")

        subject = result.get("subject")
        if not isinstance(subject, str) or not subject:
            raise _unauthorized("Token subject is missing")

        email = result.get("email")
        return Identity(subject=subject, email=email if isinstance(email, str) else None)
