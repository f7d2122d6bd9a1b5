"""ScenarioEvaluator: turns runs into pass/fail results with failure strings.

Deterministic mode delegates to DeterministicRunner. LLM mode runs one
session per conversation variant and matches the model's invocations
against the scenario steps by tool name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from toolprobe.adapters.base import AdapterConfig, BaseAdapter
from toolprobe.evaluation.assertions import apply_captures, compare_arguments, run_assertions
from toolprobe.evaluation.paths import interpolate
from toolprobe.evaluation.variants import ConversationVariant, expand_conversation
from toolprobe.execution.runner import DeterministicRunner
from toolprobe.execution.session import DEFAULT_MAX_TURNS, LLMSessionRunner
from toolprobe.models.result import EvalResult, ToolCallLogEntry, ToolInvocationRecord
from toolprobe.models.scenario import Scenario, Step
from toolprobe.optimization.hook import OptimizationHook
from toolprobe.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

MISSING_CONVERSATION = (
    'Scenario does not define a conversation script for LLM mode. Add a "conversation" array.'
)


def evaluate_invocations(
    steps: list[Step], invocations: list[ToolInvocationRecord]
) -> tuple[list[str], list[ToolCallLogEntry]]:
    """Check recorded invocations against expected steps.

    Each step consumes the first unconsumed invocation with the same tool
    name, so the model may interleave unrelated calls without shifting
    every later step. Invocations left over after all steps are reported
    as unexpected extras.

    Returns:
        (failures, tool-call log entries in invocation order)
    """
    failures: list[str] = []
    captures: dict[str, Any] = {}
    labels: dict[int, str] = {}

    for index, step in enumerate(steps):
        label = step.display_label(index)
        match = next(
            (
                i
                for i, invocation in enumerate(invocations)
                if i not in labels and invocation.name == step.tool
            ),
            None,
        )
        if match is None:
            failures.append(f"{label}: model never called tool {step.tool}.")
            continue

        labels[match] = label
        invocation = invocations[match]

        expected_args = interpolate(step.arguments, captures)
        for issue in compare_arguments(expected_args, invocation.arguments):
            failures.append(f"{label}: {issue}")

        if step.expect.status == "success" and invocation.error:
            failures.append(f'{label}: tool returned error "{invocation.error}" but success expected.')
            continue
        if step.expect.status == "error" and not invocation.error:
            failures.append(f"{label}: expected tool error but invocation succeeded.")

        if invocation.error:
            continue

        if invocation.response is not None and step.capture:
            apply_captures(step.capture, invocation.response, captures)

        for failure in run_assertions(step.expect.assertions, invocation.response, captures):
            failures.append(f"{label}: {failure}")

    extras = [inv.name for i, inv in enumerate(invocations) if i not in labels]
    if extras:
        failures.append(f"Model invoked unexpected extra tools: {', '.join(extras)}")

    tool_calls = [
        ToolCallLogEntry(
            label=labels.get(i, "unexpected"),
            name=invocation.name,
            arguments=invocation.arguments,
            status="error" if invocation.error else "success",
            error=invocation.error,
        )
        for i, invocation in enumerate(invocations)
    ]
    return failures, tool_calls


class ScenarioEvaluator:
    """Evaluates scenarios in deterministic or LLM mode.

    ``registry_factory`` is called once per run (and once per variant) so
    every run starts from fresh tool state.
    """

    def __init__(
        self,
        registry_factory: Callable[[], ToolRegistry],
        *,
        adapter: BaseAdapter | None = None,
        adapter_config: AdapterConfig | None = None,
        system_prompt: str | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        optimization_hook: OptimizationHook | None = None,
    ) -> None:
        self.registry_factory = registry_factory
        self.adapter = adapter
        self.adapter_config = adapter_config
        self.system_prompt = system_prompt
        self.max_turns = max_turns
        self.optimization_hook = optimization_hook

    async def evaluate_tools(self, scenario: Scenario) -> EvalResult:
        runner = DeterministicRunner(self.registry_factory())
        return await runner.run(scenario)

    async def evaluate_llm(self, scenario: Scenario) -> EvalResult:
        """Run every conversation variant through the model and evaluate it.

        Raises:
            ValueError: If the evaluator was built without an adapter.
        """
        if self.adapter is None or self.adapter_config is None:
            raise ValueError("LLM evaluation requires an adapter and adapter config.")

        variants = expand_conversation(scenario.conversation or [])
        if not variants:
            return EvalResult(
                scenario=scenario.id,
                passed=False,
                failures=[MISSING_CONVERSATION],
                mode="llm",
            )

        failures: list[str] = []
        tool_calls: list[ToolCallLogEntry] = []
        transcript: list[dict[str, str]] = []

        for variant in variants:
            prefix = f"[{variant.name}] " if variant.name else ""
            variant_failures, variant_calls, variant_transcript = await self._run_variant(
                scenario, variant
            )
            failures.extend(f"{prefix}{failure}" for failure in variant_failures)
            for entry in variant_calls:
                tool_calls.append(entry.model_copy(update={"label": f"{prefix}{entry.label}"}))
            transcript.extend(variant_transcript)

        return EvalResult(
            scenario=scenario.id,
            passed=not failures,
            failures=failures,
            mode="llm",
            tool_calls=tool_calls,
            transcript=transcript,
        )

    async def _run_variant(
        self, scenario: Scenario, variant: ConversationVariant
    ) -> tuple[list[str], list[ToolCallLogEntry], list[dict[str, str]]]:
        session_runner = LLMSessionRunner(
            self.adapter,
            self.registry_factory(),
            self.adapter_config,
            system_prompt=self.system_prompt,
            max_turns=self.max_turns,
            optimization_hook=self.optimization_hook,
        )
        try:
            session = await session_runner.run(variant.messages)
        except Exception as exc:
            logger.debug("Session for %s failed", scenario.id, exc_info=True)
            message = str(exc) or "Unknown LLM session error"
            return [f"LLM session failed: {message}"], [], []

        if session.max_turns_hit:
            logger.info("%s hit max_turns=%d", scenario.id, self.max_turns)

        failures, tool_calls = evaluate_invocations(scenario.steps, session.invocations)
        return failures, tool_calls, [message.to_dict() for message in session.transcript]

    async def evaluate(self, scenario: Scenario, mode: str = "tools") -> EvalResult:
        if mode == "llm":
            return await self.evaluate_llm(scenario)
        return await self.evaluate_tools(scenario)
