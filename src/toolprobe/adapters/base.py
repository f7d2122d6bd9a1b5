"""BaseAdapter ABC and unified message/result dataclasses.

Every chat-completion backend (OpenAI-compatible, Gemini) subclasses
BaseAdapter and implements send_turn(). The dataclasses here are the
types that flow between the session runner and the adapters.

These are plain dataclasses (not Pydantic) to avoid overhead in the
hot path of adapter calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class EmptyCompletionError(RuntimeError):
    """Raised when the provider returns no choice / candidate."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"LLM returned no choices ({provider}).")


class ProviderRequestError(RuntimeError):
    """Raised when the provider answers with a non-success HTTP status.

    Attributes:
        status_code: HTTP status returned by the provider.
        body: Response body text, for diagnostics.
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Chat completion failed ({status_code}): {body}")


@dataclass
class ToolCallResult:
    """A tool call extracted from the model response.

    ``arguments`` is kept exactly as the provider sent it (a JSON-ish
    string, an already structured dict, or None); recovery happens in
    the session runner, where the tool schema is known.
    """

    id: str
    name: str
    arguments: str | dict[str, Any] | None


@dataclass
class TokenUsage:
    """Token usage counts from a single adapter turn."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class AdapterTurnResult:
    """Result of a single send_turn() call to a provider adapter."""

    content: str | None
    tool_calls: list[ToolCallResult]
    usage: TokenUsage
    raw_response: dict[str, Any]
    finish_reason: str | None


@dataclass
class Message:
    """A single message in the conversation history.

    Roles: system, user, assistant, tool_result.
    """

    role: str
    content: str | None = None
    tool_calls: list[ToolCallResult] | None = None
    tool_call_id: str | None = None
    tool_name: str | None = None


@dataclass
class AdapterConfig:
    """Generation parameters for a session."""

    model: str
    temperature: float | None = None
    tool_choice: str | None = None
    max_tokens: int | None = None
    extras: dict[str, Any] = field(default_factory=dict)


class BaseAdapter(ABC):
    """Abstract base class for all provider adapters."""

    @abstractmethod
    async def send_turn(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        config: AdapterConfig | None = None,
    ) -> AdapterTurnResult:
        """Send a single turn to the model and return the result.

        Args:
            messages: Conversation history as a list of Message objects.
            tools: Tool definitions as ``{"name", "description", "parameters"}``
                dicts with JSON-schema parameters.
            config: Generation parameters for this turn.

        Raises:
            EmptyCompletionError: If the provider returned no choice.
        """
        ...

    def provider_name(self) -> str:
        return type(self).__name__
