"""Tests for toolprobe.adapters.gemini_adapter - Gemini REST adapter.

Uses httpx.MockTransport so requests never leave the process.
"""

from __future__ import annotations

import json

import httpx
import pytest

from toolprobe.adapters.base import (
    AdapterConfig,
    EmptyCompletionError,
    Message,
    ProviderRequestError,
    ToolCallResult,
)
from toolprobe.adapters.gemini_adapter import DEFAULT_GEMINI_BASE_URL, GeminiAdapter
from toolprobe.execution.session import LLMSessionRunner
from toolprobe.models.scenario import ConversationMessage
from toolprobe.tools.support import build_support_registry


def _adapter(handler, api_key: str | None = "g-key") -> GeminiAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiAdapter(api_key=api_key, http_client=client)


class TestGeminiConvertMessages:
    """Test conversion to Gemini contents."""

    def test_system_lifted_out(self):
        """System messages become the system instruction text."""
        contents, system_text = GeminiAdapter()._convert_messages([
            Message(role="system", content="Be brief."),
            Message(role="system", content="Use tools."),
            Message(role="user", content="Hi"),
        ])
        assert system_text == "Be brief.\n\nUse tools."
        assert contents == [{"role": "user", "parts": [{"text": "Hi"}]}]

    def test_tool_calls_and_results(self):
        """Calls become functionCall parts; parallel results share one user turn."""
        contents, _ = GeminiAdapter()._convert_messages([
            Message(
                role="assistant",
                content=None,
                tool_calls=[
                    ToolCallResult(id="c1", name="support.lookupCustomer", arguments='{"customerId": "cust-marcus"}'),
                    ToolCallResult(id="c2", name="support.catalogSnapshot", arguments="not json"),
                ],
            ),
            Message(role="tool_result", content='{"total": 3}', tool_call_id="c1", tool_name="support.lookupCustomer"),
            Message(role="tool_result", content='"plain"', tool_call_id="c2", tool_name="support.catalogSnapshot"),
        ])

        assert contents[0] == {
            "role": "model",
            "parts": [
                {"functionCall": {"name": "support.lookupCustomer", "args": {"customerId": "cust-marcus"}}},
                {"functionCall": {"name": "support.catalogSnapshot", "args": {}}},
            ],
        }
        assert len(contents) == 2
        assert contents[1]["role"] == "user"
        assert contents[1]["parts"] == [
            {"functionResponse": {"name": "support.lookupCustomer", "response": {"total": 3}}},
            {"functionResponse": {"name": "support.catalogSnapshot", "response": {"result": "plain"}}},
        ]

    def test_empty_assistant_turn_skipped(self):
        """An assistant turn with no text and no calls is left out of contents."""
        contents, _ = GeminiAdapter()._convert_messages([
            Message(role="user", content="Hi"),
            Message(role="assistant", content=""),
            Message(role="assistant", content=None),
            Message(role="user", content="Still there?"),
        ])
        assert contents == [
            {"role": "user", "parts": [{"text": "Hi"}]},
            {"role": "user", "parts": [{"text": "Still there?"}]},
        ]

    def test_recovered_dict_arguments_repeated(self):
        """Structured arguments on a call are sent back as functionCall.args."""
        contents, _ = GeminiAdapter()._convert_messages([
            Message(
                role="assistant",
                tool_calls=[
                    ToolCallResult(id="c1", name="support.lookupCustomer", arguments={"email": "marcus.lee@example.com"}),
                ],
            ),
        ])
        assert contents[0]["parts"] == [
            {"functionCall": {"name": "support.lookupCustomer", "args": {"email": "marcus.lee@example.com"}}},
        ]


class TestGeminiSendTurn:
    """Test request building and response parsing over a mock transport."""

    @pytest.mark.asyncio
    async def test_request_and_tool_call_response(self):
        """The request carries tools and config; functionCall parts become tool calls."""
        captured: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["key"] = request.headers.get("x-goog-api-key")
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{
                    "content": {"role": "model", "parts": [
                        {"text": "Checking. "},
                        {"functionCall": {"name": "support.catalogSnapshot", "args": {"maxCost": 1000}}},
                    ]},
                    "finishReason": "STOP",
                }],
                "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 4, "totalTokenCount": 16},
            })

        adapter = _adapter(handler)
        tools = [{
            "name": "support.catalogSnapshot",
            "description": "List rewards",
            "parameters": {"type": "object", "properties": {"maxCost": {"type": "number"}}},
        }]

        result = await adapter.send_turn(
            [Message(role="system", content="Be brief."), Message(role="user", content="cheap?")],
            tools,
            AdapterConfig(model="gemini-2.0-flash", temperature=0.1, tool_choice="required"),
        )

        assert captured["url"] == f"{DEFAULT_GEMINI_BASE_URL}/models/gemini-2.0-flash:generateContent"
        assert captured["key"] == "g-key"
        body = captured["body"]
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
        assert body["toolConfig"] == {"functionCallingConfig": {"mode": "ANY"}}
        assert body["generationConfig"] == {"temperature": 0.1}
        declaration = body["tools"][0]["functionDeclarations"][0]
        assert declaration["parameters"]["type"] == "OBJECT"
        assert declaration["parameters"]["properties"]["maxCost"] == {"type": "NUMBER"}

        assert result.content == "Checking. "
        assert result.tool_calls == [
            ToolCallResult(id="call_1", name="support.catalogSnapshot", arguments={"maxCost": 1000})
        ]
        assert result.finish_reason == "STOP"
        assert result.usage.total_tokens == 16

    @pytest.mark.asyncio
    async def test_error_status(self):
        """HTTP errors raise ProviderRequestError with the body."""
        adapter = _adapter(lambda request: httpx.Response(400, text="bad schema"))

        with pytest.raises(ProviderRequestError) as exc_info:
            await adapter.send_turn([Message(role="user", content="x")], None, AdapterConfig(model="m"))

        assert exc_info.value.status_code == 400
        assert "bad schema" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self):
        """A 429 carries a status_code the retry helper recognises."""
        from toolprobe.execution.retry import _is_transient

        adapter = _adapter(lambda request: httpx.Response(429, text="slow down"))

        with pytest.raises(ProviderRequestError) as exc_info:
            await adapter.send_turn([Message(role="user", content="x")], None, AdapterConfig(model="m"))

        assert _is_transient(exc_info.value)

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        """An empty candidate list raises EmptyCompletionError."""
        adapter = _adapter(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(EmptyCompletionError, match="gemini"):
            await adapter.send_turn([Message(role="user", content="x")], None, AdapterConfig(model="m"))

    @pytest.mark.asyncio
    async def test_no_key_header_without_api_key(self):
        """The key header is only sent when configured."""
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["has_key"] = "x-goog-api-key" in request.headers
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "hi"}]}}]})

        result = await _adapter(handler, api_key=None).send_turn(
            [Message(role="user", content="x")], None, AdapterConfig(model="m")
        )

        assert seen["has_key"] is False
        assert result.content == "hi"
        assert result.finish_reason is None

    def test_custom_base_url_trailing_slash(self):
        adapter = GeminiAdapter(base_url="http://proxy.local/v1beta/")
        assert adapter.endpoint("m") == "http://proxy.local/v1beta/models/m:generateContent"


def _function_call_reply(args) -> dict:
    return {
        "candidates": [{
            "content": {"role": "model", "parts": [
                {"functionCall": {"name": "support.lookupCustomer", "args": args}},
            ]},
            "finishReason": "STOP",
        }],
    }


class TestGeminiStringArguments:
    """Test functionCall.args sent as a string instead of an object."""

    @pytest.mark.asyncio
    async def test_string_args_passed_through(self):
        """A string args value reaches the tool call untouched."""
        adapter = _adapter(lambda request: httpx.Response(200, json=_function_call_reply("email=marcus.lee@example.com")))

        result = await adapter.send_turn([Message(role="user", content="x")], None, AdapterConfig(model="m"))

        assert result.tool_calls[0].arguments == "email=marcus.lee@example.com"

    @pytest.mark.asyncio
    async def test_session_recovers_and_repeats_arguments(self):
        """The session executes recovered arguments and sends them back to Gemini."""
        requests: list[dict] = []
        replies = [
            _function_call_reply("email=marcus.lee@example.com"),
            {"candidates": [{"content": {"parts": [{"text": "Marcus has 4200 points."}]}, "finishReason": "STOP"}]},
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json=replies[len(requests) - 1])

        runner = LLMSessionRunner(
            _adapter(handler),
            build_support_registry(),
            AdapterConfig(model="gemini-2.0-flash", tool_choice="required"),
            system_prompt="You are a support agent.",
            retry_base_delay=0.0,
        )

        session = await runner.run([ConversationMessage(role="user", content="Find marcus.lee@example.com")])

        assert session.turn_count == 2
        record = session.invocations[0]
        assert record.arguments == {"email": "marcus.lee@example.com"}
        assert record.error is None
        assert record.response["customer"]["id"] == "cust-marcus"

        model_turn = requests[1]["contents"][1]
        assert model_turn == {
            "role": "model",
            "parts": [
                {"functionCall": {"name": "support.lookupCustomer", "args": {"email": "marcus.lee@example.com"}}},
            ],
        }
        response_part = requests[1]["contents"][2]["parts"][0]["functionResponse"]
        assert response_part["response"]["customer"]["id"] == "cust-marcus"
