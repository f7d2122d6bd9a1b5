"""toolprobe storage - JSONL eval logs."""

from toolprobe.storage.log_writer import (
    EvalLogEntry,
    EvalLogWriter,
    LogSummary,
    load_eval_logs,
    summarise_logs,
)

__all__ = [
    "EvalLogEntry",
    "EvalLogWriter",
    "LogSummary",
    "load_eval_logs",
    "summarise_logs",
]
