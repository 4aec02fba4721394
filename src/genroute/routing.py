"""Platform dispatch: model families, platform choice and URL shapes.

Everything here is pure except the enterprise URL builder, which asks the
transport client for its project id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from genroute._http import CONSUMER_HOST
from genroute.errors import ConfigurationError
from genroute.types import API_KEY_CLIENT_TYPE, CONSUMER, ENTERPRISE

if TYPE_CHECKING:
    from collections.abc import Callable

    from genroute.clients.base import AbstractedClient
    from genroute.config import ConnectionConfig
    from genroute.types import ModelFamily

log = logging.getLogger(__name__)

# Model-identifier prefixes and the family each maps to.
_FAMILY_PREFIXES: tuple[tuple[str, ModelFamily], ...] = (("gemini", "gemini"),)


def model_family(model: str) -> ModelFamily:
    """Classify *model* by prefix; unknown identifiers yield None."""
    for prefix, family in _FAMILY_PREFIXES:
        if model.startswith(prefix):
            return family
    return None


def platform(credential_kind: str | None, override: str | None = None) -> str:
    """Return the platform a call should target.

    An explicit override always wins. Otherwise API-key credentials target the
    consumer platform and every other credential kind the enterprise one.
    """
    if override is not None:
        return override
    if credential_kind == API_KEY_CLIENT_TYPE:
        return CONSUMER
    return ENTERPRISE


# =============================================================================
# Method resolution
# =============================================================================


def _gemini_method(platform_name: str) -> str:
    # Both deployments only document the streamed variant for Gemini.
    del platform_name
    return "streamGenerateContent"


_METHOD_RESOLVERS: dict[str, Callable[[str], str]] = {"gemini": _gemini_method}


def method_resolver_for(family: ModelFamily) -> Callable[[str], str]:
    """Return the URL method resolver for *family*.

    Unknown families get a resolver that raises ``ConfigurationError`` when
    called, so construction succeeds and the failure surfaces at URL-building
    time, before any network attempt.
    """
    resolver = _METHOD_RESOLVERS.get(family) if family is not None else None
    if resolver is not None:
        return resolver

    def _unknown(platform_name: str) -> str:
        del platform_name
        raise ConfigurationError(
            f"Unknown model family: {family}",
            hint=(
                "Model identifiers must start with a supported family prefix: "
                f"{', '.join(p for p, _ in _FAMILY_PREFIXES)}."
            ),
        )

    return _unknown


# =============================================================================
# URL building
# =============================================================================


class UrlBuilder(Protocol):
    async def __call__(
        self, config: ConnectionConfig, method: str, client: AbstractedClient
    ) -> str: ...


async def consumer_url(
    config: ConnectionConfig, method: str, client: AbstractedClient
) -> str:
    """URL on the public API-key host."""
    del client
    return f"https://{CONSUMER_HOST}/{config.api_version}/models/{config.model}:{method}"


async def enterprise_url(
    config: ConnectionConfig, method: str, client: AbstractedClient
) -> str:
    """URL on the regional IAM endpoint; resolves the project id."""
    project_id = await client.get_project_id()
    return (
        f"https://{config.endpoint}/{config.api_version}/projects/{project_id}"
        f"/locations/{config.location}/publishers/google/models/{config.model}:{method}"
    )


_URL_BUILDERS: dict[str, UrlBuilder] = {
    CONSUMER: consumer_url,
    ENTERPRISE: enterprise_url,
}


def url_builder_for(platform_name: str) -> UrlBuilder:
    """Return the URL builder for *platform_name*.

    Unrecognized platform strings fall back to the enterprise shape.
    """
    builder = _URL_BUILDERS.get(platform_name)
    if builder is None:
        log.debug("Unrecognized platform %r; using enterprise URL shape", platform_name)
        return enterprise_url
    return builder
