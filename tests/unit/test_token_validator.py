"""Unit tests for TokenValidator."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from task_market_service.core.exceptions import ServiceError
from task_market_service.models import Identity
from task_market_service.services.token_validator import TokenValidator
from tests.helpers import fake_verify_token, token_for


@pytest.mark.unit
async def test_authenticate_returns_identity() -> None:
    mock_identity = AsyncMock()
    mock_identity.verify_token = AsyncMock(side_effect=fake_verify_token)
    validator = TokenValidator(identity_client=mock_identity)

    identity = await validator.authenticate(token_for("u-alice"))

    assert identity == Identity(subject="u-alice", email="u-alice@example.com")
    mock_identity.verify_token.assert_awaited_once_with("tok-u-alice")


@pytest.mark.unit
async def test_authenticate_empty_token() -> None:
    mock_identity = AsyncMock()
    validator = TokenValidator(identity_client=mock_identity)

    with pytest.raises(ServiceError) as exc_info:
        await validator.authenticate("")

    assert exc_info.value.error == "UNAUTHORIZED"
    assert exc_info.value.status_code == 401
    mock_identity.verify_token.assert_not_awaited()


@pytest.mark.unit
async def test_authenticate_identity_unavailable() -> None:
    """Unexpected errors from the identity client become IDENTITY_SERVICE_UNAVAILABLE."""
    mock_identity = AsyncMock()
    mock_identity.verify_token = AsyncMock(side_effect=ConnectionError("unavailable"))
    validator = TokenValidator(identity_client=mock_identity)

    with pytest.raises(ServiceError) as exc_info:
        await validator.authenticate("tok-u-alice")

    assert exc_info.value.error == "IDENTITY_SERVICE_UNAVAILABLE"
    assert exc_info.value.status_code == 502


@pytest.mark.unit
async def test_authenticate_service_error_propagates() -> None:
    expected = ServiceError("UNAUTHORIZED", "Token verification failed", 401, {})
    mock_identity = AsyncMock()
    mock_identity.verify_token = AsyncMock(side_effect=expected)
    validator = TokenValidator(identity_client=mock_identity)

    with pytest.raises(ServiceError) as exc_info:
        await validator.authenticate("tok-u-alice")

    assert exc_info.value is expected


@pytest.mark.unit
@pytest.mark.parametrize("result", [{"valid": True}, {"valid": True, "subject": ""}, ["nope"]])
async def test_authenticate_requires_subject(result) -> None:
    mock_identity = AsyncMock()
    mock_identity.verify_token = AsyncMock(return_value=result)
    validator = TokenValidator(identity_client=mock_identity)

    with pytest.raises(ServiceError) as exc_info:
        await validator.authenticate("tok-u-alice")

    assert exc_info.value.error == "UNAUTHORIZED"
