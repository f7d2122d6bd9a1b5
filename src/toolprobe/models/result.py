"""Result data models for toolprobe runs.

EvalResult is persisted (Pydantic, like the rest of the output contract);
the per-call records produced inside a run are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field


@dataclass
class ToolInvocationRecord:
    """One tool call the model actually issued, as executed."""

    name: str
    arguments: dict[str, Any]
    response: Any = None
    error: str | None = None
    call_id: str | None = None


@dataclass
class TranscriptMessage:
    """Flattened, human-readable conversation entry."""

    role: str  # system, user, assistant, tool
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ToolCallLogEntry(BaseModel):
    """A step-level entry of the tool-call log written to eval logs."""

    label: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    status: Literal["success", "error"]
    error: str | None = None


class EvalResult(BaseModel):
    """Outcome of evaluating one scenario (all of its conversation variants)."""

    scenario: str
    passed: bool
    failures: list[str] = Field(default_factory=list)
    mode: Literal["tools", "llm"] = "tools"
    tool_calls: list[ToolCallLogEntry] = Field(default_factory=list)
    transcript: list[dict[str, str]] | None = None
