"""Gemini generateContent adapter.

Talks to the Generative Language REST API directly over httpx. Tool calls
travel as ``functionCall`` parts of a ``model`` turn, tool results as
``functionResponse`` parts of a ``user`` turn, and system messages are
lifted into ``systemInstruction``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from toolprobe.adapters.base import (
    AdapterConfig,
    AdapterTurnResult,
    BaseAdapter,
    EmptyCompletionError,
    Message,
    ProviderRequestError,
    TokenUsage,
    ToolCallResult,
)
from toolprobe.adapters.schema import to_gemini_declaration

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

_TOOL_CHOICE_MODES: dict[str, str] = {
    "required": "ANY",
    "auto": "AUTO",
    "none": "NONE",
}


def _args_object(arguments: str | dict[str, Any] | None) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str) and arguments.strip():
        try:
            parsed = json.loads(arguments)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _response_object(content: str | None) -> dict[str, Any]:
    """functionResponse.response must be an object; wrap anything else."""
    if content is None:
        return {"result": None}
    try:
        parsed = json.loads(content)
    except ValueError:
        return {"result": content}
    return parsed if isinstance(parsed, dict) else {"result": parsed}


class GeminiAdapter(BaseAdapter):
    """Adapter for Gemini's ``models/{model}:generateContent`` endpoint.

    An httpx.AsyncClient may be injected (tests use httpx.MockTransport);
    otherwise one is created per turn and closed afterwards.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or DEFAULT_GEMINI_BASE_URL).strip().rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    def endpoint(self, model: str) -> str:
        return f"{self._base_url}/models/{model}:generateContent"

    def _convert_messages(
        self, messages: list[Message]
    ) -> tuple[list[dict[str, Any]], str | None]:
        """Convert unified Messages to Gemini contents plus system instruction text."""
        contents: list[dict[str, Any]] = []
        system_parts: list[str] = []

        for msg in messages:
            if msg.role == "system":
                if msg.content:
                    system_parts.append(msg.content)
            elif msg.role == "user":
                contents.append({"role": "user", "parts": [{"text": msg.content or ""}]})
            elif msg.role == "assistant":
                parts: list[dict[str, Any]] = []
                if msg.content:
                    parts.append({"text": msg.content})
                for tc in msg.tool_calls or []:
                    parts.append(
                        {"functionCall": {"name": tc.name, "args": _args_object(tc.arguments)}}
                    )
                if not parts:
                    # Gemini rejects empty text parts.
                    continue
                contents.append({"role": "model", "parts": parts})
            elif msg.role == "tool_result":
                part = {
                    "functionResponse": {
                        "name": msg.tool_name or "",
                        "response": _response_object(msg.content),
                    }
                }
                previous = contents[-1] if contents else None
                # Parallel call results share one user turn.
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and all("functionResponse" in p for p in previous["parts"])
                ):
                    previous["parts"].append(part)
                else:
                    contents.append({"role": "user", "parts": [part]})

        system_text = "\n\n".join(system_parts) if system_parts else None
        return contents, system_text

    def _build_payload(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        config: AdapterConfig,
    ) -> dict[str, Any]:
        contents, system_text = self._convert_messages(messages)
        payload: dict[str, Any] = {"contents": contents}
        if system_text:
            payload["systemInstruction"] = {"parts": [{"text": system_text}]}
        if tools:
            payload["tools"] = [
                {"functionDeclarations": [to_gemini_declaration(tool) for tool in tools]}
            ]
            mode = _TOOL_CHOICE_MODES.get((config.tool_choice or "").lower())
            if mode:
                payload["toolConfig"] = {"functionCallingConfig": {"mode": mode}}

        generation: dict[str, Any] = {}
        if config.temperature is not None:
            generation["temperature"] = config.temperature
        if config.max_tokens is not None:
            generation["maxOutputTokens"] = config.max_tokens
        if generation:
            payload["generationConfig"] = generation
        payload.update(config.extras)
        return payload

    async def _post(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["x-goog-api-key"] = self._api_key

        if self._http_client is not None:
            return await self._http_client.post(url, headers=headers, json=payload)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(url, headers=headers, json=payload)

    async def send_turn(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        config: AdapterConfig | None = None,
    ) -> AdapterTurnResult:
        """Send a single generateContent request."""
        config = config or AdapterConfig(model="gemini-2.0-flash")
        payload = self._build_payload(messages, tools, config)

        response = await self._post(self.endpoint(config.model), payload)
        if response.status_code >= 400:
            raise ProviderRequestError(response.status_code, response.text)

        body = response.json()
        candidates = body.get("candidates") or []
        if not candidates:
            raise EmptyCompletionError(self.provider_name())
        candidate = candidates[0]

        texts: list[str] = []
        tool_calls: list[ToolCallResult] = []
        for part in (candidate.get("content") or {}).get("parts") or []:
            if "functionCall" in part:
                call = part["functionCall"] or {}
                tool_calls.append(
                    ToolCallResult(
                        id=call.get("id") or f"call_{len(tool_calls) + 1}",
                        name=call.get("name", ""),
                        arguments=call.get("args"),
                    )
                )
            elif isinstance(part.get("text"), str):
                texts.append(part["text"])

        metadata = body.get("usageMetadata") or {}
        usage = TokenUsage(
            input_tokens=metadata.get("promptTokenCount", 0),
            output_tokens=metadata.get("candidatesTokenCount", 0),
            total_tokens=metadata.get("totalTokenCount", 0),
        )

        finish_reason = candidate.get("finishReason")
        logger.debug(
            "gemini turn finished (%s) with %d tool call(s)", finish_reason, len(tool_calls)
        )

        return AdapterTurnResult(
            content="".join(texts) if texts else None,
            tool_calls=tool_calls,
            usage=usage,
            raw_response=body,
            finish_reason=finish_reason,
        )

    def provider_name(self) -> str:
        return "gemini"
