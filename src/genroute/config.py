"""Configuration: frozen connection settings with per-field defaults."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any

from dotenv import load_dotenv

from genroute._http import DEFAULT_API_VERSION, DEFAULT_ENDPOINT, DEFAULT_LOCATION
from genroute.errors import ConfigurationError
from genroute.types import CONSUMER, ENTERPRISE, Platform

load_dotenv()

_KNOWN_PLATFORMS: tuple[Platform, ...] = (CONSUMER, ENTERPRISE)

# Environment variables consulted by ConnectionConfig.from_env().
_ENV_VARS: dict[str, str] = {
    "endpoint": "GENROUTE_ENDPOINT",
    "location": "GOOGLE_CLOUD_LOCATION",
    "api_version": "GENROUTE_API_VERSION",
    "platform_type": "GENROUTE_PLATFORM",
}


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable target-host settings for a connection.

    Each field defaults independently, so overriding ``location`` leaves the
    default ``endpoint`` untouched. ``platform_type`` deliberately has no
    default: when it is None the platform is derived per call from the
    transport client's credential kind.

    Example:
        config = ConnectionConfig(model="gemini-pro", location="europe-west4")
    """

    model: str
    endpoint: str = DEFAULT_ENDPOINT
    location: str = DEFAULT_LOCATION
    api_version: str = DEFAULT_API_VERSION
    platform_type: str | None = None

    def __post_init__(self) -> None:
        """Validate field shapes early for clear errors."""
        if not isinstance(self.model, str) or not self.model.strip():
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="Pass ConnectionConfig(model='gemini-pro').",
            )
        for name in ("endpoint", "location", "api_version"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f"{name} must be a non-empty string, got {value!r}",
                    hint="Omit the field to use the default.",
                )
        if "/" in self.endpoint or "://" in self.endpoint:
            raise ConfigurationError(
                f"endpoint must be a bare host name, got {self.endpoint!r}",
                hint="Pass endpoint='europe-west4-aiplatform.googleapis.com'.",
            )
        # Unknown platform strings are accepted and routed to the enterprise
        # URL shape; only the type is checked here.
        if self.platform_type is not None and not isinstance(self.platform_type, str):
            raise ConfigurationError(
                f"platform_type must be a string or None, got {self.platform_type!r}",
                hint=f"Known platforms: {', '.join(_KNOWN_PLATFORMS)}",
            )

    @classmethod
    def from_env(cls, model: str, **overrides: Any) -> ConnectionConfig:
        """Build a config from ``GENROUTE_*``/``GOOGLE_CLOUD_*`` variables.

        Explicit keyword overrides win over the environment; unset variables
        fall back to the field defaults.
        """
        unknown = set(overrides) - set(_ENV_VARS)
        if unknown:
            raise ConfigurationError(
                f"Unknown config field(s): {', '.join(sorted(unknown))}",
                hint=f"Known fields: {', '.join(_ENV_VARS)}",
            )
        kwargs: dict[str, Any] = {}
        for name, env_var in _ENV_VARS.items():
            value = overrides.get(name)
            if value is None:
                value = os.environ.get(env_var) or None
            if value is not None:
                kwargs[name] = value
        return cls(model=model, **kwargs)
