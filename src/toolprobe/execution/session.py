"""LLMSessionRunner: multi-turn tool-calling loop against a live model.

Replays a scripted conversation to an adapter, executes every tool call
the model issues against the ToolRegistry, feeds the results back, and
repeats until the model answers without tool calls or the max turns
safety net is hit. What the model actually did is returned as invocation
records plus a flattened transcript.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from toolprobe.adapters.base import (
    AdapterConfig,
    AdapterTurnResult,
    BaseAdapter,
    Message,
    TokenUsage,
    ToolCallResult,
)
from toolprobe.adapters.schema import to_tool_dict
from toolprobe.execution.arguments import ArgumentRecoveryError, parse_tool_arguments
from toolprobe.execution.retry import retry_with_backoff
from toolprobe.models.result import ToolInvocationRecord, TranscriptMessage
from toolprobe.models.scenario import ConversationMessage
from toolprobe.optimization.hook import OptimizationHook
from toolprobe.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 8

# Natural completion (OpenAI, Gemini, Anthropic-style) and truncation.
STOP_FINISH_REASONS: frozenset[str] = frozenset(
    {"stop", "STOP", "end_turn", "length", "MAX_TOKENS"}
)


@dataclass
class SessionResult:
    """Everything observed during one LLM session."""

    transcript: list[TranscriptMessage] = field(default_factory=list)
    invocations: list[ToolInvocationRecord] = field(default_factory=list)
    turn_count: int = 0
    max_turns_hit: bool = False
    finish_reason: str | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)


def _raw_arguments_text(arguments: str | dict[str, Any] | None) -> str:
    if arguments is None:
        return ""
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments)


def build_tool_call_summary(result: AdapterTurnResult) -> str:
    """Assistant text (if any) followed by one ``tool_call name: args`` line per call."""
    lines: list[str] = []
    if result.content and result.content.strip():
        lines.append(result.content.strip())
    for call in result.tool_calls:
        lines.append(f"tool_call {call.name}: {_raw_arguments_text(call.arguments)}")
    return "\n".join(lines)


def _to_json(value: Any) -> str:
    return json.dumps(value, default=str)


class LLMSessionRunner:
    """Drives one scripted conversation through an adapter.

    Every tool call the model makes produces exactly one
    ToolInvocationRecord, whether it succeeded, the tool failed, or its
    arguments could not be recovered. Those failures are recorded and fed
    back to the model rather than raised.
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        registry: ToolRegistry,
        config: AdapterConfig,
        *,
        system_prompt: str | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        optimization_hook: OptimizationHook | None = None,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        self.adapter = adapter
        self.registry = registry
        self.config = config
        self.system_prompt = system_prompt
        self.max_turns = max_turns
        self.optimization_hook = optimization_hook
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    async def run(self, conversation: list[ConversationMessage]) -> SessionResult:
        """Run the session for a scripted conversation.

        Raises:
            EmptyCompletionError: If the adapter returns no choice.
            Exception: Non-transient adapter errors, or transient ones once
                retries are exhausted.
        """
        messages: list[Message] = []
        session = SessionResult()
        if self.system_prompt:
            messages.append(Message(role="system", content=self.system_prompt))
            session.transcript.append(TranscriptMessage("system", self.system_prompt))
        for entry in conversation:
            messages.append(Message(role=entry.role, content=entry.content))
            session.transcript.append(TranscriptMessage(entry.role, entry.content))

        tools = [to_tool_dict(definition) for definition in self.registry.definitions()]

        for _ in range(self.max_turns):
            session.turn_count += 1
            result, _, _ = await retry_with_backoff(
                lambda: self.adapter.send_turn(messages, tools, self.config),
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
            )
            session.finish_reason = result.finish_reason
            session.usage.input_tokens += result.usage.input_tokens
            session.usage.output_tokens += result.usage.output_tokens
            session.usage.total_tokens += result.usage.total_tokens
            logger.debug(
                "Turn %d: finish_reason=%s tool_calls=%d",
                session.turn_count,
                result.finish_reason,
                len(result.tool_calls),
            )

            if result.tool_calls:
                recovered = [self._recover(call) for call in result.tool_calls]
                # History repeats the arguments that were executed, not the raw text.
                messages.append(
                    Message(
                        role="assistant",
                        content=result.content,
                        tool_calls=[
                            call
                            if arguments is None
                            else ToolCallResult(call.id, call.name, copy.deepcopy(arguments))
                            for call, (arguments, _) in zip(result.tool_calls, recovered)
                        ],
                    )
                )
                summary = build_tool_call_summary(result)
                if summary:
                    session.transcript.append(TranscriptMessage("assistant", summary))

                for call, (arguments, recovery_error) in zip(result.tool_calls, recovered):
                    if arguments is None:
                        record = ToolInvocationRecord(
                            name=call.name, arguments={}, error=recovery_error, call_id=call.id
                        )
                    else:
                        record = await self._invoke(call, arguments)
                    session.invocations.append(record)

                    tool_content = {"error": record.error} if record.error else record.response
                    messages.append(
                        Message(
                            role="tool_result",
                            content=_to_json(tool_content),
                            tool_call_id=call.id,
                            tool_name=call.name,
                        )
                    )
                    session.transcript.append(
                        TranscriptMessage(
                            "tool", _to_json({"name": call.name, "response": tool_content})
                        )
                    )
                    await self._notify(record, session.transcript)
                continue

            content = result.content or ""
            messages.append(Message(role="assistant", content=content))
            session.transcript.append(TranscriptMessage("assistant", content))

            if result.finish_reason in STOP_FINISH_REASONS:
                break
        else:
            session.max_turns_hit = True
            logger.info("Session stopped after max_turns=%d", self.max_turns)

        return session

    def _recover(self, call: ToolCallResult) -> tuple[dict[str, Any] | None, str | None]:
        """Recovered arguments, or None plus the error text when nothing was usable."""
        definition = self.registry.get_definition(call.name)
        schema = definition.input_schema if definition is not None else None
        try:
            return parse_tool_arguments(call.arguments, schema), None
        except ArgumentRecoveryError as exc:
            logger.warning("Could not recover arguments for %s: %s", call.name, exc)
            return None, str(exc)

    async def _invoke(
        self, call: ToolCallResult, arguments: dict[str, Any]
    ) -> ToolInvocationRecord:
        try:
            response = await self.registry.execute(call.name, arguments)
        except Exception as exc:
            logger.debug("Tool %s failed: %s", call.name, exc)
            return ToolInvocationRecord(
                name=call.name,
                arguments=arguments,
                error=str(exc) or "Unknown tool error",
                call_id=call.id,
            )

        return ToolInvocationRecord(
            name=call.name,
            arguments=arguments,
            response=copy.deepcopy(response),
            call_id=call.id,
        )

    async def _notify(
        self, record: ToolInvocationRecord, transcript: list[TranscriptMessage]
    ) -> None:
        if self.optimization_hook is None:
            return
        try:
            await self.optimization_hook.observe(record, list(transcript))
        except Exception:
            logger.warning("Optimization hook failed for %s", record.name, exc_info=True)
