"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off transport clients as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from genroute.clients.base import ClientOps

GEMINI_MODEL = "gemini-pro"


@dataclass
class FakeClient:
    """Transport double that records calls and returns a configurable value."""

    client_type: str = "apiKey"
    project_id: str = "p"
    response: Any = "raw-response"
    requests: list[ClientOps] = field(default_factory=list)
    project_lookups: int = 0

    async def get_project_id(self) -> str:
        self.project_lookups += 1
        return self.project_id

    async def request(self, ops: ClientOps) -> Any:
        self.requests.append(ops)
        return self.response

    @property
    def last(self) -> ClientOps:
        assert self.requests, "no request recorded"
        return self.requests[-1]


@dataclass
class ScriptedClient(FakeClient):
    """FakeClient that returns a scripted sequence of results/exceptions."""

    script: list[Any] = field(default_factory=list)

    async def request(self, ops: ClientOps) -> Any:
        self.requests.append(ops)
        if not self.script:
            return self.response
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@dataclass
class NoProjectClient(FakeClient):
    """FakeClient whose credential cannot be tied to a project."""

    error: BaseException = field(default_factory=lambda: LookupError("no project"))

    async def get_project_id(self) -> str:
        self.project_lookups += 1
        raise self.error


@dataclass
class GateClient(FakeClient):
    """FakeClient that blocks inside request() until released."""

    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)
    cancelled: bool = False

    async def request(self, ops: ClientOps) -> Any:
        self.requests.append(ops)
        self.started.set()
        try:
            await self.release.wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return self.response


class SearchArgs(BaseModel):
    """Arguments for a web search."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(description="What to search for")
    limit: int = 5


@dataclass
class FakeStructuredTool:
    """Looks like an agent-framework structured tool (namespace-tagged)."""

    name: str
    description: str
    args_schema: Any
    lc_namespace: list[str] = field(
        default_factory=lambda: ["langchain", "tools", "structured"]
    )
