"""Structural translation of tool schemas into provider formats."""

from __future__ import annotations

import logging
from typing import Any

from toolprobe.tools.registry import ToolDefinition, ToolSchema

logger = logging.getLogger(__name__)

_GEMINI_TYPES: dict[str, str] = {
    "object": "OBJECT",
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "null": "NULL",
}


def to_tool_dict(definition: ToolDefinition) -> dict[str, Any]:
    """Provider-neutral tool dict passed to BaseAdapter.send_turn()."""
    return {
        "name": definition.name,
        "description": definition.description,
        "parameters": definition.input_schema.to_dict(),
    }


def to_openai_tool(tool: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool.get("description", ""),
            "parameters": tool.get("parameters", {}),
        },
    }


def to_gemini_schema(schema: ToolSchema | dict[str, Any]) -> dict[str, Any]:
    """Convert a JSON schema into Gemini's OpenAPI-subset schema.

    Type names are upper-cased into Gemini's enum; description, enum,
    required, properties and items are carried over recursively.
    """
    if isinstance(schema, ToolSchema):
        schema = schema.to_dict()

    result: dict[str, Any] = {}
    schema_type = schema.get("type")
    if isinstance(schema_type, str):
        result["type"] = _GEMINI_TYPES.get(schema_type.lower(), schema_type.upper())
    if schema.get("description"):
        result["description"] = schema["description"]
    if schema.get("enum"):
        result["enum"] = list(schema["enum"])
    if isinstance(schema.get("properties"), dict):
        result["properties"] = {
            key: to_gemini_schema(value) for key, value in schema["properties"].items()
        }
    if schema.get("required"):
        result["required"] = list(schema["required"])
    items = schema.get("items")
    if isinstance(items, dict):
        result["items"] = to_gemini_schema(items)
    elif isinstance(items, list) and items:
        # Gemini accepts a single item schema only.
        if len(items) > 1:
            logger.warning(
                "Gemini schemas take one item schema; dropping %d tuple item schema(s)",
                len(items) - 1,
            )
        result["items"] = to_gemini_schema(items[0])
    return result


def to_gemini_declaration(tool: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": tool["name"],
        "description": tool.get("description", ""),
        "parameters": to_gemini_schema(tool.get("parameters", {"type": "object"})),
    }
