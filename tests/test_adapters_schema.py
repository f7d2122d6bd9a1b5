"""Tests for toolprobe.adapters.schema - provider tool formats."""

from __future__ import annotations

import logging

from toolprobe.adapters.schema import (
    to_gemini_declaration,
    to_gemini_schema,
    to_openai_tool,
    to_tool_dict,
)
from toolprobe.tools.support import SUPPORT_TOOL_DEFINITIONS


def _definition(name: str):
    return next(d for d in SUPPORT_TOOL_DEFINITIONS if d.name == name)


class TestToolDict:
    """Test the provider-neutral tool dict."""

    def test_support_tool(self):
        tool = to_tool_dict(_definition("support.issueGoodwill"))
        assert tool["name"] == "support.issueGoodwill"
        assert tool["parameters"]["type"] == "object"
        assert tool["parameters"]["required"] == ["customerId", "points", "reason"]
        assert tool["parameters"]["properties"]["channel"]["enum"] == ["email", "sms", "push", "support"]

    def test_openai_wrapping(self):
        """OpenAI tools wrap the dict in a function envelope."""
        tool = to_openai_tool({"name": "t", "parameters": {"type": "object"}})
        assert tool == {
            "type": "function",
            "function": {"name": "t", "description": "", "parameters": {"type": "object"}},
        }


class TestGeminiSchema:
    """Test translation to Gemini's schema dialect."""

    def test_types_upper_cased_recursively(self):
        schema = {
            "type": "object",
            "properties": {
                "ids": {"type": "array", "items": {"type": "string"}},
                "limit": {"type": "integer", "description": "Max rows"},
            },
            "required": ["ids"],
        }
        assert to_gemini_schema(schema) == {
            "type": "OBJECT",
            "properties": {
                "ids": {"type": "ARRAY", "items": {"type": "STRING"}},
                "limit": {"type": "INTEGER", "description": "Max rows"},
            },
            "required": ["ids"],
        }

    def test_tuple_items_use_first(self, caplog):
        """Positional item schemas collapse to the first, and the loss is logged."""
        schema = {"type": "array", "items": [{"type": "number"}, {"type": "string"}]}
        with caplog.at_level(logging.WARNING, logger="toolprobe.adapters.schema"):
            assert to_gemini_schema(schema)["items"] == {"type": "NUMBER"}
        assert "dropping 1 tuple item schema" in caplog.text

    def test_single_tuple_item_not_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="toolprobe.adapters.schema"):
            assert to_gemini_schema({"type": "array", "items": [{"type": "string"}]})["items"] == {"type": "STRING"}
        assert caplog.text == ""

    def test_empty_required_dropped(self):
        assert "required" not in to_gemini_schema({"type": "object", "required": []})

    def test_declaration_from_tool_schema(self):
        """Declarations accept a ToolSchema-derived parameter dict."""
        declaration = to_gemini_declaration(to_tool_dict(_definition("support.restockReward")))
        assert declaration["name"] == "support.restockReward"
        assert declaration["parameters"]["properties"]["inventoryDelta"] == {"type": "INTEGER"}
