"""Scenario data models for toolprobe evaluation suites.

These models encode the user-facing scenario document contract: ordered
steps naming a tool, templated arguments, captures and expectations, plus
an optional scripted conversation for LLM mode.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Assertion(BaseModel):
    """A path-based predicate evaluated against a tool response."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    path: str
    equals: Any = None
    contains: str | None = None
    min_length: int | None = Field(default=None, alias="minLength", ge=0)
    exists: bool | None = None
    is_null: bool | None = Field(default=None, alias="isNull")

    @property
    def has_equals(self) -> bool:
        """True when ``equals`` was given, including an explicit null."""
        return "equals" in self.model_fields_set


class Expectation(BaseModel):
    """Expected outcome of a step."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: Literal["success", "error"] = "success"
    assertions: list[Assertion] = Field(default_factory=list, alias="assert")


class Step(BaseModel):
    """A single expected tool interaction."""

    model_config = ConfigDict(extra="forbid")

    label: str | None = None
    tool: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    capture: dict[str, str] = Field(default_factory=dict)
    expect: Expectation = Field(default_factory=Expectation)

    def display_label(self, index: int) -> str:
        """Label used in failure messages (``Step N`` when unlabelled)."""
        return self.label or f"Step {index + 1}"


class ConversationMessage(BaseModel):
    """One scripted message replayed to the model in LLM mode."""

    model_config = ConfigDict(extra="forbid")

    role: Literal["user", "assistant", "system"]
    content: str
    variant: str | None = None


class Scenario(BaseModel):
    """A complete scenario document.

    Loaded from one JSON (or YAML) file per scenario.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    description: str = ""
    steps: list[Step] = Field(default_factory=list)
    conversation: list[ConversationMessage] | None = None
