"""httpx-backed transport clients for both deployments."""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from typing import TYPE_CHECKING, Any

import httpx

from genroute.clients._errors import wrap_transport_error
from genroute.clients.base import ClientOps, TransportResponse
from genroute.errors import CredentialError
from genroute.types import API_KEY_CLIENT_TYPE

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = logging.getLogger(__name__)

_API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
_PROJECT_ENV_VARS = ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT")
_CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
_DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


class _HttpxClient:
    """Shared httpx plumbing: one attempt per ``request`` call, no retries."""

    client_type = "unknown"

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float | None = None,
    ) -> None:
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout if timeout is not None else _DEFAULT_TIMEOUT

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy-initialize the httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _auth_headers(self) -> dict[str, str]:
        return {}

    async def request(self, ops: ClientOps) -> TransportResponse:
        """Send one request; map failures onto APIError."""
        client = self._get_client()
        headers = {
            "Content-Type": "application/json",
            **ops.headers,
            **(await self._auth_headers()),
        }
        request = client.build_request(
            ops.method,
            ops.url,
            headers=headers,
            json=ops.data,
        )
        log.debug("%s %s (response_type=%s)", ops.method, ops.url, ops.response_type)
        try:
            response = await client.send(request, stream=True)
        except asyncio.CancelledError:
            raise
        except httpx.HTTPError as e:
            raise wrap_transport_error(
                e,
                client_type=self.client_type,
                phase="request",
                message=f"{ops.method} {ops.url} failed",
            ) from e

        if response.is_error:
            try:
                await response.aread()
            finally:
                await response.aclose()
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise wrap_transport_error(
                    e,
                    client_type=self.client_type,
                    phase="request",
                    message=f"{ops.method} {ops.url} failed",
                ) from e

        response_headers = dict(response.headers)
        if ops.response_type == "stream":
            return TransportResponse(
                status_code=response.status_code,
                headers=response_headers,
                data=response.aiter_bytes(),
                _close=response.aclose,
            )

        try:
            await response.aread()
        finally:
            await response.aclose()
        return TransportResponse(
            status_code=response.status_code,
            headers=response_headers,
            data=response.json() if response.content else None,
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


class ApiKeyClient(_HttpxClient):
    """Consumer-platform client authenticated with an API key.

    The key is resolved from ``GEMINI_API_KEY`` then ``GOOGLE_API_KEY`` when
    not passed explicitly.
    """

    client_type = API_KEY_CLIENT_TYPE

    def __init__(
        self,
        api_key: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float | None = None,
    ) -> None:
        super().__init__(http_client=http_client, timeout=timeout)
        if api_key is None:
            api_key = next(
                (os.environ[v] for v in _API_KEY_ENV_VARS if os.environ.get(v)), None
            )
        if not api_key:
            raise CredentialError(
                "API key required for the consumer platform",
                hint="Set GEMINI_API_KEY or pass api_key=...",
            )
        self._api_key = api_key

    async def _auth_headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._api_key}

    async def get_project_id(self) -> str:
        raise CredentialError(
            "API-key credentials are not bound to a project",
            hint="Use a TokenClient for the enterprise platform, or set platform_type='gai'.",
        )

    def __repr__(self) -> str:
        return "ApiKeyClient(api_key=[REDACTED])"


class TokenClient(_HttpxClient):
    """Enterprise-platform client authenticated with OAuth bearer tokens.

    ``token_provider`` may be sync or async. Without one, Application Default
    Credentials are loaded through ``google-auth``.
    """

    client_type = "gauth"

    def __init__(
        self,
        token_provider: Callable[[], str | Awaitable[str]] | None = None,
        *,
        project_id: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float | None = None,
    ) -> None:
        super().__init__(http_client=http_client, timeout=timeout)
        self._token_provider = token_provider
        self._project_id = project_id
        self._credentials: Any = None
        self._adc_project_id: str | None = None

    def _load_default_credentials(self) -> Any:
        """Lazy-load Application Default Credentials."""
        if self._credentials is None:
            try:
                import google.auth
                from google.auth.exceptions import DefaultCredentialsError
            except ImportError as e:
                raise CredentialError(
                    "google-auth package not installed",
                    hint="pip install 'genroute[gauth]' or pass token_provider=...",
                ) from e
            try:
                credentials, project = google.auth.default(scopes=[_CLOUD_PLATFORM_SCOPE])
            except DefaultCredentialsError as e:
                raise CredentialError(
                    "Application Default Credentials could not be found",
                    hint="Run `gcloud auth application-default login` or pass token_provider=...",
                ) from e
            self._credentials = credentials
            self._adc_project_id = project
        return self._credentials

    async def _token(self) -> str:
        if self._token_provider is not None:
            token = self._token_provider()
            if inspect.isawaitable(token):
                token = await token
        else:
            credentials = self._load_default_credentials()
            if not credentials.valid:
                from google.auth.transport.requests import Request

                await asyncio.to_thread(credentials.refresh, Request())
            token = credentials.token
        if not isinstance(token, str) or not token:
            raise CredentialError(
                "Token provider returned no access token",
                hint="The provider must return a non-empty OAuth access token string.",
            )
        return token

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._token()}"}

    async def get_project_id(self) -> str:
        """Resolve the project: explicit, then environment, then ADC."""
        if self._project_id:
            return self._project_id
        for env_var in _PROJECT_ENV_VARS:
            value = os.environ.get(env_var)
            if value:
                return value
        if self._token_provider is None:
            self._load_default_credentials()
            if self._adc_project_id:
                return self._adc_project_id
        raise CredentialError(
            "No project id could be resolved for the bound credential",
            hint="Set GOOGLE_CLOUD_PROJECT or pass project_id=...",
        )

    def __repr__(self) -> str:
        return f"TokenClient(project_id={self._project_id!r})"
