"""Shared test helpers: caller identities, task payloads, fake token verification."""

from __future__ import annotations

from typing import Any

from task_market_service.models import Identity

REQUESTER = Identity(subject="u-requester", email="requester@example.com")
WORKER = Identity(subject="u-worker", email="worker@example.com")
OTHER_WORKER = Identity(subject="u-other-worker")

_TOKEN_PREFIX = "tok-"


def task_fields(**overrides: Any) -> dict[str, Any]:
    """Valid create-task payload; keyword arguments replace individual fields."""
    fields: dict[str, Any] = {
        "title": "Walk the dog",
        "description": "Two laps around the park",
        "category": "task",
        "location_text": "Volkspark Friedrichshain",
        "estimated_minutes": 30,
        "prepay_amount_cents": 500,
        "is_immediate": True,
    }
    fields.update(overrides)
    return fields


def token_for(subject: str) -> str:
    """Bearer token the fake identity provider resolves to ``subject``."""
    return f"{_TOKEN_PREFIX}{subject}"


def auth_headers(identity: Identity) -> dict[str, str]:
    """Authorization header for the given caller."""
    return {"Authorization": f"Bearer {token_for(identity.subject)}"}


def fake_verify_token(token: str) -> dict[str, Any]:
    """Stand-in for IdentityClient.verify_token: tok-<subject> is valid, anything else is not."""
    if not token.startswith(_TOKEN_PREFIX):
        return {"valid": False}
    subject = token[len(_TOKEN_PREFIX) :]
    return {"valid": True, "subject": subject, "email": f"{subject}@example.com"}


def config_yaml(db_path: str, log_directory: str, *, rate_per_minute_cents: str = "50") -> str:
    """Complete service configuration pointing at a temp database and log directory."""
    return f"""\
service:
  name: "task-market"
  version: "0.1.0"
server:
  host: "0.0.0.0"
  port: 8080
  log_level: "info"
logging:
  level: "WARNING"
  directory: "{log_directory}"
database:
  path: "{db_path}"
identity:
  base_url: "http://localhost:8001"
  verify_token_path: "/tokens/verify"
  timeout_seconds: 10
messaging:
  base_url: "http://localhost:8005"
  assignments_path: "/conversations/task-assigned"
  timeout_seconds: 5
billing:
  rate_per_minute_cents: {rate_per_minute_cents}
request:
  max_body_size: 4096
"""
