"""Core types: platforms, call parameters, messages and wire shapes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, NotRequired, TypedDict

from genroute.errors import ConfigurationError
from genroute.tools import Tool, coerce_tools

if TYPE_CHECKING:
    import asyncio

#: ``gai`` is the API-key consumer deployment, ``gcp`` the IAM enterprise one.
Platform = Literal["gai", "gcp"]
CONSUMER: Platform = "gai"
ENTERPRISE: Platform = "gcp"

ModelFamily = Literal["gemini"] | None

#: Credential kind reported by API-key transport clients.
API_KEY_CLIENT_TYPE = "apiKey"

ResponseType = Literal["json", "stream"]
HttpMethod = Literal["GET", "POST", "DELETE"]


# =============================================================================
# Wire shapes
# =============================================================================


class GeminiPart(TypedDict, total=False):
    text: str
    inlineData: dict[str, str]
    fileData: dict[str, str]
    functionCall: dict[str, Any]
    functionResponse: dict[str, Any]


class GeminiContent(TypedDict):
    role: Literal["user", "model", "function"]
    parts: list[GeminiPart]


class GeminiSafetySetting(TypedDict):
    category: str
    threshold: str


class GeminiGenerationConfig(TypedDict, total=False):
    temperature: float
    topK: int
    topP: float
    maxOutputTokens: int
    stopSequences: list[str]


class GeminiFunctionDeclaration(TypedDict):
    name: str
    description: NotRequired[str]
    parameters: NotRequired[dict[str, Any]]


class GeminiTool(TypedDict, total=False):
    functionDeclarations: list[GeminiFunctionDeclaration]
    googleSearchRetrieval: dict[str, Any]
    googleSearch: dict[str, Any]
    codeExecution: dict[str, Any]


class GeminiRequest(TypedDict):
    contents: list[GeminiContent]
    generationConfig: GeminiGenerationConfig
    tools: NotRequired[list[GeminiTool]]
    safetySettings: NotRequired[list[GeminiSafetySetting]]


# =============================================================================
# Call inputs
# =============================================================================


@dataclass(frozen=True)
class ToolCall:
    """A tool call previously requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Message:
    """A standard conversational message turn."""

    role: str
    content: str | Sequence[Any] = ""
    tool_call_id: str | None = None
    name: str | None = None
    tool_calls: Sequence[ToolCall] | None = None


@dataclass(frozen=True)
class GenerationParams:
    """Generation parameters for one call.

    Every field is optional; absent fields are omitted from the wire payload so
    the provider's own defaults apply. Values are not validated or clamped.
    Tools are resolved into tagged variants on construction.
    """

    temperature: float | None = None
    top_k: int | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    stop_sequences: Sequence[str] | None = None
    safety_settings: Sequence[GeminiSafetySetting] | None = None
    tools: Sequence[Any] | None = None

    def __post_init__(self) -> None:
        """Resolve tool variants once, at the boundary."""
        if isinstance(self.stop_sequences, str):
            raise ConfigurationError(
                "stop_sequences must be a list of strings",
                hint="Pass stop_sequences=['END'] rather than 'END'.",
            )
        object.__setattr__(self, "tools", coerce_tools(self.tools))

    @property
    def resolved_tools(self) -> tuple[Tool, ...]:
        return tuple(self.tools or ())


@dataclass(frozen=True)
class CallOptions:
    """Per-call options handed to the retrying caller unchanged."""

    #: Set to abandon the call; the caller raises ``asyncio.CancelledError``.
    signal: asyncio.Event | None = None
