"""Tests for toolprobe.tools.registry - tool registration and execution."""

from __future__ import annotations

import pytest

from toolprobe.tools.registry import (
    ToolCall,
    ToolDefinition,
    ToolNotFoundError,
    ToolRegistry,
    ToolSchema,
)


def _definition(name: str) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=f"{name} tool",
        input_schema=ToolSchema.from_dict({"type": "object", "properties": {"x": {"type": "number"}}}),
    )


class TestToolSchema:
    """Test the JSON-Schema subset."""

    def test_round_trip_nested(self):
        raw = {
            "type": "object",
            "properties": {
                "tags": {"type": "array", "items": {"type": "string", "enum": ["a", "b"]}},
            },
            "required": ["tags"],
        }
        schema = ToolSchema.from_dict(raw)
        assert schema.property_schema("tags").items.enum == ["a", "b"]
        assert schema.property_schema("missing") is None
        assert schema.to_dict() == raw

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unsupported schema type"):
            ToolSchema.from_dict({"type": "date"})

    def test_empty_object_keeps_properties(self):
        """Object schemas always serialise a properties map."""
        assert ToolSchema(type="object").to_dict() == {"type": "object", "properties": {}}


class TestToolRegistry:
    """Test registration, lookup and execution."""

    @pytest.mark.asyncio
    async def test_sync_and_async_runners(self):
        """Both plain and coroutine runners are supported."""
        registry = ToolRegistry()

        async def async_runner(args):
            return {"doubled": args["x"] * 2}

        registry.register(_definition("math.echo"), lambda args: {"echo": args})
        registry.register(_definition("math.double"), async_runner)

        assert await registry.execute("math.echo", {"x": 1}) == {"echo": {"x": 1}}
        assert await registry.run(ToolCall(name="math.double", arguments={"x": 4})) == {"doubled": 8}

    def test_lookup(self):
        registry = ToolRegistry()
        registry.register(_definition("b.tool"), lambda args: None)
        registry.register(_definition("a.tool"), lambda args: None)

        assert registry.names() == ["a.tool", "b.tool"]
        assert [d.name for d in registry.definitions()] == ["b.tool", "a.tool"]
        assert "a.tool" in registry
        assert "c.tool" not in registry
        assert len(registry) == 2
        assert registry.get_definition("c.tool") is None

    def test_duplicate_registration(self):
        registry = ToolRegistry()
        registry.register(_definition("a.tool"), lambda args: None)
        with pytest.raises(ValueError, match="already registered"):
            registry.register(_definition("a.tool"), lambda args: None)

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        """Unknown names raise ToolNotFoundError listing what exists."""
        registry = ToolRegistry()
        registry.register(_definition("a.tool"), lambda args: None)

        with pytest.raises(ToolNotFoundError) as exc_info:
            await registry.execute("z.tool", {})

        assert str(exc_info.value) == "Unsupported tool: z.tool. Available tools: a.tool"
        assert exc_info.value.available == ["a.tool"]

    @pytest.mark.asyncio
    async def test_runner_errors_propagate(self):
        registry = ToolRegistry()

        def broken(args):
            raise RuntimeError("backend down")

        registry.register(_definition("a.tool"), broken)
        with pytest.raises(RuntimeError, match="backend down"):
            await registry.execute("a.tool", {})
