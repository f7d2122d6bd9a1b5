"""toolprobe data models - re-exports all public model classes."""

from toolprobe.models.config import ConfigError, LLMSettings, ProjectConfig
from toolprobe.models.result import (
    EvalResult,
    ToolCallLogEntry,
    ToolInvocationRecord,
    TranscriptMessage,
)
from toolprobe.models.scenario import (
    Assertion,
    ConversationMessage,
    Expectation,
    Scenario,
    Step,
)

__all__ = [
    "Assertion",
    "ConfigError",
    "ConversationMessage",
    "EvalResult",
    "Expectation",
    "LLMSettings",
    "ProjectConfig",
    "Scenario",
    "Step",
    "ToolCallLogEntry",
    "ToolInvocationRecord",
    "TranscriptMessage",
]
