"""Connection: one uniform generate-content call over both deployments.

A connection is composed of three strategies picked once at construction:

- a method resolver, from the model family (``routing.method_resolver_for``)
- a URL builder per platform (``routing.url_builder_for``), looked up per call
  because the platform is derived fresh from the client's credential kind
- a payload formatter (``formatting.GeminiFormatter`` by default)
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Protocol

from genroute._http import BASELINE_USER_AGENT
from genroute.clients.base import ClientOps
from genroute.config import ConnectionConfig
from genroute.env import get_runtime_environment
from genroute.formatting import GeminiFormatter
from genroute.retry import AsyncCaller
from genroute.routing import method_resolver_for, model_family, platform, url_builder_for
from genroute.types import CallOptions, GenerationParams

if TYPE_CHECKING:
    from genroute.clients.base import AbstractedClient
    from genroute.types import HttpMethod, ModelFamily

log = logging.getLogger(__name__)


class PayloadFormatter(Protocol):
    def format_data(self, input: Any, parameters: GenerationParams) -> Any: ...


class Connection:
    """Platform-aware generate-content connection.

    Configuration is read-only after construction; use ``replace()`` to derive
    a connection with different settings. Concurrent ``request`` calls are safe
    as long as the transport client is.

    Example:
        conn = Connection(ConnectionConfig(model="gemini-pro"), ApiKeyClient())
        response = await conn.request("Hello", GenerationParams(temperature=0.2))
    """

    def __init__(
        self,
        config: ConnectionConfig,
        client: AbstractedClient,
        caller: AsyncCaller | None = None,
        *,
        streaming: bool = False,
        formatter: PayloadFormatter | None = None,
        module_name: str | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._caller = caller if caller is not None else AsyncCaller()
        self._streaming = streaming
        self._formatter = formatter if formatter is not None else GeminiFormatter()
        self._module_name_override = module_name
        self._resolve_method = method_resolver_for(model_family(config.model))

    # -- read-only configuration ------------------------------------------------

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def client(self) -> AbstractedClient:
        return self._client

    @property
    def caller(self) -> AsyncCaller:
        return self._caller

    @property
    def streaming(self) -> bool:
        return self._streaming

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    @property
    def location(self) -> str:
        return self._config.location

    @property
    def api_version(self) -> str:
        return self._config.api_version

    @property
    def platform_type(self) -> str | None:
        """The explicit platform override, or None when derived per call."""
        return self._config.platform_type

    @property
    def model_family(self) -> ModelFamily:
        return model_family(self._config.model)

    @property
    def platform(self) -> str:
        """Effective platform: the override, else derived from the client."""
        return platform(getattr(self._client, "client_type", None), self._config.platform_type)

    def replace(self, **changes: Any) -> Connection:
        """Return a new connection with *changes* applied to its config."""
        return Connection(
            dataclasses.replace(self._config, **changes),
            self._client,
            self._caller,
            streaming=self._streaming,
            formatter=self._formatter,
            module_name=self._module_name_override,
        )

    # -- URL and method ---------------------------------------------------------

    def build_method(self) -> HttpMethod:
        return "POST"

    async def build_url(self) -> str:
        """Build the target URL for the effective platform.

        The method suffix is resolved before the enterprise project lookup, so
        an unknown model family fails without touching the network.
        """
        target = self.platform
        method = self._resolve_method(target)
        url = await url_builder_for(target)(self._config, method, self._client)
        log.debug("Built %s URL for model %s: %s", target, self._config.model, url)
        return url

    # -- diagnostic headers -----------------------------------------------------

    def _module_name(self) -> str:
        return self._module_name_override or type(self).__name__

    def _client_library_version(self) -> str:
        env = get_runtime_environment()
        library = env.library if env is not None else "genroute-py"
        library_version = env.library_version if env is not None else "0"
        ret = f"{library}/{library_version}"
        module_name = self._module_name()
        if module_name:
            ret = f"{ret}-{module_name}"
        return ret

    def _client_info_headers(self) -> dict[str, str]:
        try:
            user_agent = self._client_library_version()
        except Exception as e:
            log.debug("Falling back to baseline User-Agent: %s", e)
            user_agent = BASELINE_USER_AGENT
        return {"User-Agent": user_agent}

    # -- calls ------------------------------------------------------------------

    async def _request(self, data: Any, options: CallOptions | None) -> Any:
        """Perform one transport call (under the caller's policy) and return it raw."""
        url = await self.build_url()
        method = self.build_method()
        ops = ClientOps(
            url=url,
            method=method,
            headers=self._client_info_headers(),
            data=data if data and method == "POST" else None,
            response_type="stream" if self._streaming else "json",
        )
        return await self._caller.call_with_options(
            options, lambda: self._client.request(ops)
        )

    async def request(
        self,
        input: Any,
        parameters: GenerationParams | None = None,
        options: CallOptions | None = None,
    ) -> Any:
        """Format *input* and *parameters*, send them, and return the raw response."""
        data = self._formatter.format_data(
            input, parameters if parameters is not None else GenerationParams()
        )
        return await self._request(data, options if options is not None else CallOptions())

    def __repr__(self) -> str:
        return (
            f"Connection(model={self.model!r}, platform_type={self.platform_type!r}, "
            f"endpoint={self.endpoint!r}, location={self.location!r}, "
            f"api_version={self.api_version!r}, streaming={self._streaming})"
        )
