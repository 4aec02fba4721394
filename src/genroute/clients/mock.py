"""Mock transport client for offline use and testing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from genroute.clients.base import ClientOps, TransportResponse
from genroute.errors import CredentialError


@dataclass
class MockClient:
    """Transport double that records requests and returns a canned body.

    ``client_type`` defaults to ``"apiKey"`` so connections target the
    consumer platform; set it to anything else to exercise enterprise URLs.
    """

    client_type: str = "apiKey"
    project_id: str | None = "mock-project"
    response_data: Any = None
    requests: list[ClientOps] = field(default_factory=list)
    project_lookups: int = 0

    async def get_project_id(self) -> str:
        self.project_lookups += 1
        if not self.project_id:
            raise CredentialError("MockClient has no project id configured")
        return self.project_id

    async def request(self, ops: ClientOps) -> TransportResponse:
        """Record *ops* and return a deterministic response."""
        self.requests.append(ops)
        data = self.response_data
        if data is None:
            data = [
                {
                    "candidates": [
                        {"content": {"role": "model", "parts": [{"text": "mock"}]}}
                    ]
                }
            ]
        return TransportResponse(status_code=200, headers={}, data=data)
