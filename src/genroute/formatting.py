"""Request formatting: generic input + parameters -> Gemini wire body.

All functions here are pure. The content formatter is pluggable; the rest of
the payload (generation config, safety settings, tools) is fixed by the wire
format.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import json
from typing import Any, Protocol, runtime_checkable

from genroute.errors import ConfigurationError
from genroute.schema import strip_unsupported_keys, to_json_schema
from genroute.tools import ExternalTool, NativeTool, NativeToolGroup, Tool
from genroute.types import (
    GeminiContent,
    GeminiFunctionDeclaration,
    GeminiGenerationConfig,
    GeminiPart,
    GeminiRequest,
    GeminiSafetySetting,
    GeminiTool,
    GenerationParams,
    Message,
    ToolCall,
)

# Generic parameter name -> wire field name, in wire order.
_GENERATION_FIELDS: tuple[tuple[str, str], ...] = (
    ("temperature", "temperature"),
    ("top_k", "topK"),
    ("top_p", "topP"),
    ("max_output_tokens", "maxOutputTokens"),
    ("stop_sequences", "stopSequences"),
)

_PART_KEYS = frozenset(
    {"text", "inlineData", "fileData", "functionCall", "functionResponse"}
)

_ROLE_MAP: dict[str, str] = {
    "user": "user",
    "human": "user",
    "assistant": "model",
    "model": "model",
    "ai": "model",
}


# =============================================================================
# Contents
# =============================================================================


@runtime_checkable
class ContentFormatter(Protocol):
    """Produce ordered, role-tagged content blocks from a generic input."""

    def format_contents(
        self, input: Any, parameters: GenerationParams
    ) -> list[GeminiContent]: ...


def _to_part(part: Any) -> GeminiPart:
    if isinstance(part, str):
        return {"text": part}
    if isinstance(part, Mapping):
        # file-URI parts
        if "uri" in part and "mime_type" in part:
            return {"fileData": {"fileUri": part["uri"], "mimeType": part["mime_type"]}}
        if "data" in part and "mime_type" in part:
            return {"inlineData": {"data": part["data"], "mimeType": part["mime_type"]}}
        if _PART_KEYS.intersection(part):
            return dict(part)  # type: ignore[return-value]
    raise ConfigurationError(
        f"Unsupported content part: {part!r}",
        hint="Parts must be strings or dicts with 'text', 'uri'+'mime_type', or a Gemini part key.",
    )


def _is_message(item: Any) -> bool:
    return isinstance(item, Message) or (
        isinstance(item, Mapping) and isinstance(item.get("role"), str)
    )


def _as_message(item: Any) -> Message:
    if isinstance(item, Message):
        return item
    raw_calls = item.get("tool_calls") or None
    tool_calls = None
    if raw_calls is not None:
        tool_calls = [
            tc if isinstance(tc, ToolCall) else ToolCall(**tc) for tc in raw_calls
        ]
    return Message(
        role=item["role"],
        content=item.get("content") or item.get("parts") or "",
        tool_call_id=item.get("tool_call_id"),
        name=item.get("name"),
        tool_calls=tool_calls,
    )


def _content_parts(content: str | Sequence[Any]) -> list[GeminiPart]:
    if isinstance(content, str):
        return [{"text": content}] if content else []
    return [_to_part(p) for p in content]


def _tool_response_payload(content: str | Sequence[Any]) -> dict[str, Any]:
    if not isinstance(content, str):
        return {"result": list(content)}
    if not content:
        return {}
    try:
        parsed = json.loads(content)
    except ValueError:
        return {"result": content}
    return parsed if isinstance(parsed, dict) else {"result": content}


class MessageContentFormatter:
    """Default content formatter for strings, part lists and message lists.

    Roles ``user``/``human`` map to ``user`` and ``assistant``/``model``/``ai``
    to ``model``. Tool results become ``functionResponse`` parts on a user
    turn, named after the matching earlier tool call. Consecutive turns with
    the same role are folded into one, since Gemini enforces turn order.
    """

    def format_contents(
        self, input: Any, parameters: GenerationParams
    ) -> list[GeminiContent]:
        del parameters
        if isinstance(input, (str, Mapping, Message)):
            items: list[Any] = [input]
        elif isinstance(input, Sequence):
            items = list(input)
        else:
            raise ConfigurationError(
                f"Unsupported input type: {type(input).__name__}",
                hint="Pass a string, a list of parts, or a list of messages.",
            )

        if items and all(_is_message(i) for i in items):
            contents = self._from_messages([_as_message(i) for i in items])
        else:
            parts = [_to_part(p) for p in items]
            contents = [{"role": "user", "parts": parts}] if parts else []

        if not contents:
            raise ConfigurationError(
                "Input produced no content",
                hint="Pass at least one non-empty prompt or message.",
            )
        return contents

    def _from_messages(self, messages: list[Message]) -> list[GeminiContent]:
        contents: list[GeminiContent] = []
        call_id_to_name: dict[str, str] = {}

        for message in messages:
            role = message.role.lower()
            if role in ("tool", "function"):
                name = message.name
                if name is None and message.tool_call_id is not None:
                    name = call_id_to_name.get(message.tool_call_id)
                if not name:
                    raise ConfigurationError(
                        "Tool result has no function name",
                        hint=(
                            "Set Message.name, or a tool_call_id matching an earlier "
                            "assistant tool call."
                        ),
                    )
                part: GeminiPart = {
                    "functionResponse": {
                        "name": name,
                        "response": _tool_response_payload(message.content),
                    }
                }
                self._append(contents, "user", [part])
                continue

            wire_role = _ROLE_MAP.get(role)
            if wire_role is None:
                raise ConfigurationError(
                    f"Unsupported message role: {message.role!r}",
                    hint="Use 'user', 'assistant'/'model', or 'tool' roles.",
                )
            parts = _content_parts(message.content)
            for tc in message.tool_calls or ():
                call_id_to_name[tc.id] = tc.name
                parts.append({"functionCall": {"name": tc.name, "args": dict(tc.arguments)}})
            if parts:
                self._append(contents, wire_role, parts)
        return contents

    @staticmethod
    def _append(
        contents: list[GeminiContent], role: str, parts: list[GeminiPart]
    ) -> None:
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": role, "parts": parts})  # type: ignore[typeddict-item]


# =============================================================================
# Generation config, safety settings, tools
# =============================================================================


def format_generation_config(parameters: GenerationParams) -> GeminiGenerationConfig:
    """Project parameters field-for-field; absent fields are omitted."""
    config: dict[str, Any] = {}
    for attr, wire_name in _GENERATION_FIELDS:
        value = getattr(parameters, attr)
        if value is None:
            continue
        config[wire_name] = list(value) if attr == "stop_sequences" else value
    return config  # type: ignore[return-value]


def format_safety_settings(parameters: GenerationParams) -> list[GeminiSafetySetting]:
    """Pass safety settings through verbatim, defaulting to an empty list."""
    return list(parameters.safety_settings or [])


def external_tool_to_function_declaration(tool: ExternalTool) -> GeminiFunctionDeclaration:
    """Convert a structured tool into a Gemini function declaration.

    Gemini rejects ``$schema`` and ``additionalProperties`` at the top level
    of a declaration's parameters, so both are removed.
    """
    parameters = strip_unsupported_keys(to_json_schema(tool.schema))
    return {
        "name": tool.name,
        "description": tool.description,
        "parameters": parameters,
    }


def tool_to_function_declaration(tool: Tool) -> GeminiFunctionDeclaration:
    if isinstance(tool, ExternalTool):
        return external_tool_to_function_declaration(tool)
    if isinstance(tool, NativeTool):
        return dict(tool.declaration)  # type: ignore[return-value]
    raise ConfigurationError(f"Unsupported tool variant: {type(tool).__name__}")


def format_tools(parameters: GenerationParams) -> list[GeminiTool]:
    """Build the wire ``tools`` list; empty -> [].

    Function declarations share one leading ``functionDeclarations`` entry in
    input order. Native tool groups follow as their own entries, unchanged.
    """
    declarations: list[GeminiFunctionDeclaration] = []
    groups: list[GeminiTool] = []
    for tool in parameters.resolved_tools:
        if isinstance(tool, NativeToolGroup):
            groups.append(dict(tool.group))  # type: ignore[arg-type]
        else:
            declarations.append(tool_to_function_declaration(tool))
    if declarations:
        return [{"functionDeclarations": declarations}, *groups]
    return groups


class GeminiFormatter:
    """Payload formatter for the Gemini family."""

    def __init__(self, content_formatter: ContentFormatter | None = None) -> None:
        self.content_formatter = content_formatter or MessageContentFormatter()

    def format_data(self, input: Any, parameters: GenerationParams) -> GeminiRequest:
        """Assemble the wire body.

        ``contents`` and ``generationConfig`` are always present; ``tools``
        and ``safetySettings`` only when non-empty, because the API treats an
        absent field differently from an empty list.
        """
        contents = self.content_formatter.format_contents(input, parameters)
        generation_config = format_generation_config(parameters)
        tools = format_tools(parameters)
        safety_settings = format_safety_settings(parameters)

        request: GeminiRequest = {
            "contents": contents,
            "generationConfig": generation_config,
        }
        if tools:
            request["tools"] = tools
        if safety_settings:
            request["safetySettings"] = safety_settings
        return request
