"""HTTP clients for external service communication."""

from task_market_service.clients.identity_client import IdentityClient
from task_market_service.clients.messaging_client import MessagingClient

__all__ = ["IdentityClient", "MessagingClient"]
