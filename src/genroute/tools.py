"""Tool definitions: a tagged union resolved once at the API boundary.

Callers may hand over these shapes of tool:

- ``ExternalTool`` (or any structured-tool object carrying a namespace tag),
  whose input schema is a Pydantic model or a JSON Schema dict.
- ``NativeTool`` (or a mapping with a ``name``) holding a provider function
  declaration.
- A bare ``{"functionDeclarations": [...]}`` group, which is spliced into its
  declarations in order.
- ``NativeToolGroup`` (or any other mapping), a provider tool entry such as
  ``{"googleSearchRetrieval": {}}`` or ``{"codeExecution": {}}`` that is sent
  as its own ``tools`` entry, unchanged.

``coerce_tools`` turns whatever arrives into a tuple of tagged variants so the
formatter never has to sniff shapes again.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

from genroute.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable

ToolSchema = type[BaseModel] | dict[str, Any]

# Attributes that mark an object as a structured tool from an agent framework.
_NAMESPACE_ATTRS = ("lc_namespace", "namespace")


@dataclass(frozen=True)
class ExternalTool:
    """A structured tool whose input schema still needs converting."""

    name: str
    description: str
    schema: ToolSchema
    kind: Literal["external"] = field(default="external", init=False)

    def __post_init__(self) -> None:
        """Reject tools the provider could never declare."""
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError(
                "Tool name must be a non-empty string",
                hint="Pass ExternalTool(name='lookup', description='...', schema=Model).",
            )
        if not (
            isinstance(self.schema, dict)
            or (isinstance(self.schema, type) and issubclass(self.schema, BaseModel))
        ):
            raise ConfigurationError(
                f"Tool {self.name!r} schema must be a Pydantic model class or JSON schema dict",
                hint="Pass a BaseModel subclass or a dict following JSON Schema.",
            )


@dataclass(frozen=True)
class NativeTool:
    """A function declaration already in the provider's shape."""

    declaration: Mapping[str, Any]
    kind: Literal["native"] = field(default="native", init=False)

    @property
    def name(self) -> str | None:
        value = self.declaration.get("name")
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class NativeToolGroup:
    """A whole provider tool entry, passed to the wire ``tools`` list as is."""

    group: Mapping[str, Any]
    kind: Literal["native_group"] = field(default="native_group", init=False)

    def __post_init__(self) -> None:
        if not self.group:
            raise ConfigurationError(
                "Tool group must not be empty",
                hint="Pass a provider tool entry such as {'googleSearchRetrieval': {}}.",
            )
        declarations = self.group.get("functionDeclarations")
        if declarations is not None and not isinstance(declarations, (list, tuple)):
            raise ConfigurationError(
                "functionDeclarations must be a list",
                hint="Pass {'functionDeclarations': [{'name': ..., 'parameters': ...}]}.",
            )


Tool = ExternalTool | NativeTool | NativeToolGroup

_TAGGED = (ExternalTool, NativeTool, NativeToolGroup)


def is_structured_tool(obj: Any) -> bool:
    """Return True when *obj* looks like a framework structured tool.

    Detection is structural: the object carries a list-valued namespace tag
    plus a ``name`` and an input ``schema`` (or ``args_schema``).
    """
    if isinstance(obj, (Mapping, *_TAGGED)):
        return False
    has_namespace = any(
        isinstance(getattr(obj, attr, None), (list, tuple)) for attr in _NAMESPACE_ATTRS
    )
    has_schema = (
        getattr(obj, "schema", None) is not None
        or getattr(obj, "args_schema", None) is not None
    )
    return has_namespace and has_schema and isinstance(getattr(obj, "name", None), str)


def _from_structured_tool(obj: Any) -> ExternalTool:
    schema = getattr(obj, "args_schema", None)
    if schema is None:
        schema = obj.schema
    return ExternalTool(
        name=obj.name,
        description=getattr(obj, "description", "") or "",
        schema=schema,
    )


def coerce_tool(obj: Any) -> list[Tool]:
    """Coerce one caller-supplied tool into tagged variants.

    Returns a list because a bare ``functionDeclarations`` group expands into
    one variant per declaration.
    """
    if isinstance(obj, _TAGGED):
        return [obj]
    if is_structured_tool(obj):
        return [_from_structured_tool(obj)]
    if isinstance(obj, Mapping):
        if "name" in obj:
            return [NativeTool(dict(obj))]
        group = NativeToolGroup(dict(obj))
        if set(obj) == {"functionDeclarations"}:
            return [NativeTool(dict(decl)) for decl in obj["functionDeclarations"]]
        return [group]
    raise ConfigurationError(
        f"Unsupported tool definition: {type(obj).__name__}",
        hint=(
            "Pass ExternalTool(...), a structured tool object, a function "
            "declaration dict with 'name' and 'parameters', or a provider tool "
            "entry such as {'googleSearchRetrieval': {}}."
        ),
    )


def coerce_tools(tools: Iterable[Any] | None) -> tuple[Tool, ...]:
    """Resolve a caller tool list into tagged variants, preserving order."""
    if tools is None:
        return ()
    if isinstance(tools, (str, bytes, Mapping)):
        raise ConfigurationError(
            "tools must be a list of tool definitions",
            hint="Wrap a single tool in a list: tools=[my_tool].",
        )
    resolved: list[Tool] = []
    for tool in tools:
        resolved.extend(coerce_tool(tool))
    return tuple(resolved)
