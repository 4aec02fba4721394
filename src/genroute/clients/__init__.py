"""Transport clients."""

from .base import AbstractedClient, ClientOps, TransportResponse
from .http import ApiKeyClient, TokenClient
from .mock import MockClient

__all__ = [
    "AbstractedClient",
    "ApiKeyClient",
    "ClientOps",
    "MockClient",
    "TokenClient",
    "TransportResponse",
]
