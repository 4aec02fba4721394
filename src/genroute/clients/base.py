"""Transport client protocol: the single-HTTP-attempt primitive."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from genroute.types import HttpMethod, ResponseType

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@dataclass(frozen=True)
class ClientOps:
    """Everything a transport needs to perform one HTTP call."""

    url: str
    method: HttpMethod
    headers: dict[str, str] = field(default_factory=dict)
    data: Any = None
    response_type: ResponseType = "json"


@dataclass
class TransportResponse:
    """Raw response returned by the bundled transport clients.

    For ``response_type="json"`` ``data`` holds the decoded body. For
    ``"stream"`` it is an async byte iterator and the caller must ``aclose()``
    once done.
    """

    status_code: int
    headers: dict[str, str]
    data: Any
    _close: Callable[[], Awaitable[None]] | None = field(default=None, repr=False)

    async def aclose(self) -> None:
        if self._close is not None:
            close, self._close = self._close, None
            await close()


@runtime_checkable
class AbstractedClient(Protocol):
    """Authenticated transport client consumed by connections.

    ``client_type`` names the credential kind bound to the client; connections
    read it to pick a default platform. ``get_project_id`` may fail when the
    credential cannot be tied to a project.
    """

    @property
    def client_type(self) -> str:
        """Credential kind, e.g. ``"apiKey"`` or ``"gauth"``."""
        ...

    async def get_project_id(self) -> str:
        """Return the project the bound credential belongs to."""
        ...

    async def request(self, ops: ClientOps) -> Any:
        """Perform exactly one HTTP attempt."""
        ...
