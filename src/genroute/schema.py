"""JSON Schema conversion for tool input schemas."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from pydantic import BaseModel

# Top-level keys the provider's function-calling API rejects.
UNSUPPORTED_SCHEMA_KEYS: frozenset[str] = frozenset({"$schema", "additionalProperties"})


def to_json_schema(schema: type[BaseModel] | dict[str, Any]) -> dict[str, Any]:
    """Return a JSON Schema dict for a Pydantic model class or schema dict.

    Dicts are deep-copied so callers can mutate the result freely. Pydantic
    errors propagate unchanged.
    """
    if isinstance(schema, dict):
        return deepcopy(schema)
    return schema.model_json_schema()


def strip_unsupported_keys(schema: dict[str, Any]) -> dict[str, Any]:
    """Drop ``$schema`` and ``additionalProperties`` from the top level only."""
    return {k: v for k, v in schema.items() if k not in UNSUPPORTED_SCHEMA_KEYS}
