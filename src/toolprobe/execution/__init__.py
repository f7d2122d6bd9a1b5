"""toolprobe execution - argument recovery, runners, and retry."""

from toolprobe.execution.arguments import ArgumentRecoveryError, parse_tool_arguments
from toolprobe.execution.retry import retry_with_backoff
from toolprobe.execution.runner import DeterministicRunner
from toolprobe.execution.session import LLMSessionRunner, SessionResult

__all__ = [
    "ArgumentRecoveryError",
    "DeterministicRunner",
    "LLMSessionRunner",
    "SessionResult",
    "parse_tool_arguments",
    "retry_with_backoff",
]
