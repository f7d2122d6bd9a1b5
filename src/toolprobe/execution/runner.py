"""DeterministicRunner: executes scenario steps directly against the registry.

No model is involved. Each step's arguments are interpolated with the
captures gathered so far, the tool is invoked, and the outcome is checked
against the step's expectation. Mismatches become failure strings; they
never abort the run.
"""

from __future__ import annotations

import logging
from typing import Any

from toolprobe.evaluation.assertions import apply_captures, run_assertions
from toolprobe.evaluation.paths import interpolate
from toolprobe.models.result import EvalResult, ToolCallLogEntry
from toolprobe.models.scenario import Scenario
from toolprobe.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class DeterministicRunner:
    """Runs every step of a scenario, in order, against a ToolRegistry."""

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    async def run(self, scenario: Scenario) -> EvalResult:
        """Execute a scenario and return its evaluation.

        Captures start empty for every run. A step whose tool fails when
        success was expected records a status failure and skips its
        captures and assertions; later steps still run.
        """
        captures: dict[str, Any] = {}
        failures: list[str] = []
        tool_calls: list[ToolCallLogEntry] = []

        for index, step in enumerate(scenario.steps):
            label = step.display_label(index)
            arguments = interpolate(step.arguments, captures)
            logger.debug("%s: %s -> %s", scenario.id, label, step.tool)

            response: Any = None
            status = "success"
            error: str | None = None
            try:
                response = await self.registry.execute(step.tool, arguments)
            except Exception as exc:
                status = "error"
                error = str(exc) or type(exc).__name__

            tool_calls.append(
                ToolCallLogEntry(
                    label=label,
                    name=step.tool,
                    arguments=arguments,
                    status=status,
                    error=error,
                )
            )

            expected_status = step.expect.status
            if status != expected_status:
                detail = f" ({error})" if error else ""
                failures.append(
                    f"{label}: expected status {expected_status} but received {status}{detail}"
                )
                if status == "error":
                    continue

            if status != "success":
                continue

            if response is not None and step.capture:
                apply_captures(step.capture, response, captures)

            for failure in run_assertions(step.expect.assertions, response, captures):
                failures.append(f"{label}: {failure}")

        return EvalResult(
            scenario=scenario.id,
            passed=not failures,
            failures=failures,
            mode="tools",
            tool_calls=tool_calls,
        )
