"""Tool registry: tool names mapped to runners and input contracts.

The registry is the single execution boundary shared by the deterministic
runner and the LLM session runner. Definitions are immutable once
registered; the registry itself is read-only after startup.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union

logger = logging.getLogger(__name__)

SCHEMA_TYPES: frozenset[str] = frozenset(
    {"object", "string", "number", "integer", "boolean", "array", "null"}
)

ToolRunner = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]


class ToolNotFoundError(Exception):
    """Raised when a tool name is not present in the registry.

    Attributes:
        tool_name: The requested tool name.
        available: Sorted names of the registered tools.
    """

    def __init__(self, tool_name: str, available: list[str]) -> None:
        self.tool_name = tool_name
        self.available = available
        super().__init__(
            f"Unsupported tool: {tool_name}. "
            f"Available tools: {', '.join(available) if available else 'none'}"
        )


class ToolExecutionError(Exception):
    """Raised by tool runners for domain-level failures (bad input, missing records)."""


@dataclass
class ToolSchema:
    """Recursive JSON-Schema subset describing a tool input."""

    type: str | None = None
    description: str | None = None
    properties: dict[str, ToolSchema] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
    items: ToolSchema | list[ToolSchema] | None = None
    enum: list[Any] | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ToolSchema:
        """Build a ToolSchema from a JSON Schema dict."""
        schema_type = raw.get("type")
        if schema_type is not None and schema_type not in SCHEMA_TYPES:
            raise ValueError(
                f"Unsupported schema type {schema_type!r}. "
                f"Expected one of {sorted(SCHEMA_TYPES)}"
            )

        items_raw = raw.get("items")
        items: ToolSchema | list[ToolSchema] | None
        if isinstance(items_raw, list):
            items = [cls.from_dict(entry) for entry in items_raw]
        elif isinstance(items_raw, dict):
            items = cls.from_dict(items_raw)
        else:
            items = None

        return cls(
            type=schema_type,
            description=raw.get("description"),
            properties={
                name: cls.from_dict(prop)
                for name, prop in (raw.get("properties") or {}).items()
            },
            required=list(raw.get("required") or []),
            items=items,
            enum=list(raw["enum"]) if raw.get("enum") is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to a JSON Schema dict, omitting empty fields."""
        data: dict[str, Any] = {}
        if self.type is not None:
            data["type"] = self.type
        if self.description:
            data["description"] = self.description
        if self.properties or self.type == "object":
            data["properties"] = {
                name: prop.to_dict() for name, prop in self.properties.items()
            }
        if self.required:
            data["required"] = list(self.required)
        if isinstance(self.items, list):
            data["items"] = [entry.to_dict() for entry in self.items]
        elif self.items is not None:
            data["items"] = self.items.to_dict()
        if self.enum is not None:
            data["enum"] = list(self.enum)
        return data

    def property_schema(self, name: str) -> ToolSchema | None:
        """Return the declared schema for a property, or None if undeclared."""
        return self.properties.get(name)


@dataclass(frozen=True)
class ToolDefinition:
    """A registered tool's public contract."""

    name: str
    description: str
    input_schema: ToolSchema


@dataclass
class ToolCall:
    """A structured invocation of a named tool."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


class ToolRegistry:
    """Maps tool names to runners and definitions.

    Runners receive the argument dict and may be plain functions or
    coroutine functions; execute() awaits whichever they return.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, ToolDefinition] = {}
        self._runners: dict[str, ToolRunner] = {}

    def register(self, definition: ToolDefinition, runner: ToolRunner) -> None:
        """Register a tool. Names must be unique."""
        if definition.name in self._definitions:
            raise ValueError(f"Tool '{definition.name}' is already registered.")
        self._definitions[definition.name] = definition
        self._runners[definition.name] = runner

    def names(self) -> list[str]:
        return sorted(self._definitions)

    def definitions(self) -> list[ToolDefinition]:
        """All definitions in registration order."""
        return list(self._definitions.values())

    def get_definition(self, name: str) -> ToolDefinition | None:
        return self._definitions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    async def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        """Invoke a tool by name and return its JSON-compatible response.

        Raises:
            ToolNotFoundError: If no tool with that name is registered.
            Exception: Whatever the tool runner raises.
        """
        runner = self._runners.get(name)
        if runner is None:
            raise ToolNotFoundError(name, self.names())

        logger.debug("Executing tool %s with arguments %s", name, arguments)
        result = runner(arguments)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def run(self, call: ToolCall) -> Any:
        """Execute a ToolCall."""
        return await self.execute(call.name, call.arguments)
