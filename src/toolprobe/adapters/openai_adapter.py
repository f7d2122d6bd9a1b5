"""OpenAI-compatible chat-completion adapter.

Serves OpenAI, OpenRouter and Ollama (through its OpenAI-compatible
``/v1`` endpoint): they share the same wire shape and differ only in base
URL and whether an API key is needed.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from toolprobe.adapters.base import (
    AdapterConfig,
    AdapterTurnResult,
    BaseAdapter,
    EmptyCompletionError,
    Message,
    TokenUsage,
    ToolCallResult,
)
from toolprobe.adapters.schema import to_openai_tool

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_SUFFIX = "/chat/completions"


def normalize_chat_completion_url(base_url: str, provider: str) -> str:
    """Turn a configured base URL into the full chat-completions endpoint.

    Trailing slashes are dropped, an explicit ``/chat/completions`` suffix
    is kept as-is, and Ollama URLs get the ``/v1`` prefix when missing.

    Raises:
        ValueError: If base_url is blank.
    """
    trimmed = base_url.strip()
    if not trimmed:
        raise ValueError("LLM_PROVIDER_BASE_URL must not be empty.")

    without_slash = trimmed.rstrip("/")
    lowered = without_slash.lower()
    if lowered.endswith(CHAT_COMPLETIONS_SUFFIX):
        return without_slash

    if provider == "ollama":
        if lowered.endswith("/v1"):
            return f"{without_slash}{CHAT_COMPLETIONS_SUFFIX}"
        return f"{without_slash}/v1{CHAT_COMPLETIONS_SUFFIX}"

    return f"{without_slash}{CHAT_COMPLETIONS_SUFFIX}"


class OpenAIAdapter(BaseAdapter):
    """Adapter for the OpenAI chat completion API and compatible servers.

    The AsyncOpenAI client is created lazily on the first turn.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        provider: str = "openai",
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._provider = provider
        self._timeout = timeout
        self._client: Any = None

    def _client_base_url(self) -> str | None:
        if not self._base_url:
            return None
        endpoint = normalize_chat_completion_url(self._base_url, self._provider)
        # The SDK appends the chat-completions path itself.
        return endpoint[: -len(CHAT_COMPLETIONS_SUFFIX)]

    def _get_client(self) -> Any:
        """Lazily initialize and return the AsyncOpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                # Local servers accept any key, but the SDK insists on one.
                api_key=self._api_key or self._provider,
                base_url=self._client_base_url(),
                timeout=self._timeout,
            )
        return self._client

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert unified Messages to OpenAI chat format."""
        result: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role in ("system", "user"):
                result.append({"role": msg.role, "content": msg.content})
            elif msg.role == "assistant":
                entry: dict[str, Any] = {"role": "assistant", "content": msg.content}
                if msg.tool_calls:
                    entry["tool_calls"] = [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {
                                "name": tc.name,
                                "arguments": (
                                    tc.arguments
                                    if isinstance(tc.arguments, str)
                                    else json.dumps(tc.arguments or {})
                                ),
                            },
                        }
                        for tc in msg.tool_calls
                    ]
                result.append(entry)
            elif msg.role == "tool_result":
                entry = {
                    "role": "tool",
                    "tool_call_id": msg.tool_call_id,
                    "content": msg.content,
                }
                if msg.tool_name:
                    entry["name"] = msg.tool_name
                result.append(entry)
        return result

    async def send_turn(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        config: AdapterConfig | None = None,
    ) -> AdapterTurnResult:
        """Send a single turn to the chat-completions endpoint."""
        config = config or AdapterConfig(model="gpt-4o-mini")
        client = self._get_client()

        kwargs: dict[str, Any] = {
            "model": config.model,
            "messages": self._convert_messages(messages),
        }
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        if tools:
            kwargs["tools"] = [to_openai_tool(tool) for tool in tools]
            if config.tool_choice:
                kwargs["tool_choice"] = config.tool_choice
        if config.max_tokens is not None:
            kwargs["max_tokens"] = config.max_tokens
        kwargs.update(config.extras)

        response = await client.chat.completions.create(**kwargs)

        if not response.choices:
            raise EmptyCompletionError(self.provider_name())
        choice = response.choices[0]

        # Raw argument strings are passed through untouched; they are
        # recovered against the tool schema by the session runner.
        tool_calls = [
            ToolCallResult(
                id=tc.id,
                name=tc.function.name,
                arguments=tc.function.arguments,
            )
            for tc in choice.message.tool_calls or []
        ]

        usage = TokenUsage()
        if response.usage is not None:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )

        logger.debug(
            "%s turn finished (%s) with %d tool call(s)",
            self._provider,
            choice.finish_reason,
            len(tool_calls),
        )

        return AdapterTurnResult(
            content=choice.message.content,
            tool_calls=tool_calls,
            usage=usage,
            raw_response=response.model_dump(),
            finish_reason=choice.finish_reason,
        )

    def provider_name(self) -> str:
        return self._provider
