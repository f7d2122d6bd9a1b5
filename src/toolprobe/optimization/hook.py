"""Optional prompt-optimization hook fed by LLM-mode tool invocations.

The session runner hands every executed invocation to the hook so an
external optimizer can learn from real model behaviour. Capturing is a
side channel: a missing hook is the normal state, and a failing hook is
logged and ignored.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from toolprobe.models.config import ProjectConfig
from toolprobe.models.result import ToolInvocationRecord, TranscriptMessage

logger = logging.getLogger(__name__)


@dataclass
class OptimizationCapture:
    """A single observed tool invocation, as handed to the optimizer."""

    program: str
    input: dict[str, Any]
    output: Any
    error: str | None = None
    transcript: list[dict[str, str]] = field(default_factory=list)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class OptimizationHook(ABC):
    """Receives every invocation made during an LLM session."""

    @abstractmethod
    async def observe(
        self,
        invocation: ToolInvocationRecord,
        transcript: list[TranscriptMessage],
    ) -> None:
        ...


class CaptureOptimizationHook(OptimizationHook):
    """Buffers captures in memory until drained."""

    def __init__(self) -> None:
        self._buffer: list[OptimizationCapture] = []

    async def observe(
        self,
        invocation: ToolInvocationRecord,
        transcript: list[TranscriptMessage],
    ) -> None:
        self._buffer.append(
            OptimizationCapture(
                program=invocation.name,
                input=copy.deepcopy(invocation.arguments),
                output=copy.deepcopy(invocation.response),
                error=invocation.error,
                transcript=[message.to_dict() for message in transcript],
            )
        )

    def drain(self) -> list[OptimizationCapture]:
        """Return and clear everything captured so far."""
        entries = self._buffer
        self._buffer = []
        return entries

    def __len__(self) -> int:
        return len(self._buffer)


def resolve_optimization_hook(config: ProjectConfig) -> OptimizationHook | None:
    """Return a capture hook when optimization is enabled and credentialed."""
    if not config.optimization_enabled:
        return None
    if not config.optimizer_api_key:
        logger.info("Optimization enabled but OPTIMIZER_API_KEY is not set; skipping capture")
        return None
    return CaptureOptimizationHook()
