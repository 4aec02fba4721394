"""genroute: one generate-content call surface over two Gemini deployments.

Public API:
    - connect(): Build a Connection with a suitable transport client
    - Connection: Platform-aware generate-content connection
    - ConnectionConfig: Immutable target-host settings
    - GenerationParams: Per-call generation parameters
    - ExternalTool / NativeTool / NativeToolGroup: Tool definitions
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from genroute.clients import ApiKeyClient, MockClient, TokenClient
from genroute.config import ConnectionConfig
from genroute.connection import Connection
from genroute.errors import (
    APIError,
    ConfigurationError,
    CredentialError,
    GenrouteError,
    RateLimitError,
)
from genroute.retry import AsyncCaller, RetryPolicy
from genroute.routing import model_family, platform
from genroute.tools import ExternalTool, NativeTool, NativeToolGroup
from genroute.types import CONSUMER, ENTERPRISE, CallOptions, GenerationParams, Message, ToolCall

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from genroute.clients.base import AbstractedClient

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("genroute")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("genroute").addHandler(logging.NullHandler())

logger = logging.getLogger(__name__)


def connect(
    model: str,
    *,
    api_key: str | None = None,
    token_provider: Callable[[], str | Awaitable[str]] | None = None,
    project_id: str | None = None,
    client: AbstractedClient | None = None,
    use_mock: bool = False,
    streaming: bool = False,
    retry: RetryPolicy | None = None,
    **config_overrides: Any,
) -> Connection:
    """Build a connection for *model*, choosing a transport client.

    Client selection, first match wins:
    an explicit ``client``; ``use_mock``; an ``api_key`` argument; a
    ``token_provider`` or ``project_id`` argument; ``GEMINI_API_KEY`` /
    ``GOOGLE_API_KEY`` in the environment; otherwise Application Default
    Credentials via ``TokenClient``.

    Args:
        model: Model identifier, e.g. ``"gemini-1.5-pro"``.
        api_key: Consumer-platform API key.
        token_provider: Callable returning an OAuth access token.
        project_id: Enterprise project id.
        client: A ready transport client; bypasses client selection.
        use_mock: Use ``MockClient`` (no network).
        streaming: Ask the transport for a streamed response body.
        retry: Retry policy for the caller.
        **config_overrides: ``endpoint``, ``location``, ``api_version`` or
            ``platform_type``; unset fields come from the environment.

    Example:
        conn = genroute.connect("gemini-1.5-pro", location="europe-west4")
        raw = await conn.request("Hello")
    """
    config = ConnectionConfig.from_env(model, **config_overrides)
    if client is None:
        client = _select_client(
            api_key=api_key,
            token_provider=token_provider,
            project_id=project_id,
            use_mock=use_mock,
        )
    logger.debug("Connecting %s via %s", model, type(client).__name__)
    caller = AsyncCaller(policy=retry) if retry is not None else AsyncCaller()
    return Connection(config, client, caller, streaming=streaming)


def _select_client(
    *,
    api_key: str | None,
    token_provider: Callable[[], str | Awaitable[str]] | None,
    project_id: str | None,
    use_mock: bool,
) -> AbstractedClient:
    if use_mock:
        return MockClient()
    if api_key is not None:
        return ApiKeyClient(api_key)
    if token_provider is not None or project_id is not None:
        return TokenClient(token_provider, project_id=project_id)
    if os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY"):
        return ApiKeyClient()
    return TokenClient()


# Re-export for convenience
__all__ = [
    "CONSUMER",
    "ENTERPRISE",
    "APIError",
    "ApiKeyClient",
    "AsyncCaller",
    "CallOptions",
    "ConfigurationError",
    "Connection",
    "ConnectionConfig",
    "CredentialError",
    "ExternalTool",
    "GenerationParams",
    "GenrouteError",
    "Message",
    "MockClient",
    "NativeTool",
    "NativeToolGroup",
    "RateLimitError",
    "RetryPolicy",
    "TokenClient",
    "ToolCall",
    "connect",
    "model_family",
    "platform",
]
