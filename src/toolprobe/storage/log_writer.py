"""JSONL eval log persistence and summarisation.

Each evaluated scenario run is written as one JSON line to
``{log_dir}/eval-{scenario}-{run_id}.jsonl``. Writes are atomic (write to
.tmp, then rename) so a crashed run never leaves a half-written line.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from toolprobe.models.result import EvalResult, ToolCallLogEntry

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def log_file_stem(scenario: str, run_id: str) -> str:
    """Log file stem, with the scenario id reduced to filename-safe characters."""
    slug = _UNSAFE_FILENAME_CHARS.sub("-", scenario).strip(".-") or "scenario"
    return f"eval-{slug}-{run_id}"


class EvalLogEntry(BaseModel):
    """One eval log record, serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str
    run_id: str = Field(alias="runId")
    scenario: str
    mode: Literal["tools", "llm"]
    status: Literal["passed", "failed"]
    failures: list[str] = Field(default_factory=list)
    tool_calls: list[ToolCallLogEntry] = Field(default_factory=list, alias="toolCalls")
    transcript: list[dict[str, str]] | None = None

    @classmethod
    def from_result(cls, result: EvalResult, run_id: str) -> EvalLogEntry:
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            run_id=run_id,
            scenario=result.scenario,
            mode=result.mode,
            status="passed" if result.passed else "failed",
            failures=list(result.failures),
            tool_calls=list(result.tool_calls),
            transcript=result.transcript,
        )

    def to_json_line(self) -> str:
        data = self.model_dump(mode="json", by_alias=True)
        if data["transcript"] is None:
            del data["transcript"]
        for call in data["toolCalls"]:
            if call.get("error") is None:
                call.pop("error", None)
        return json.dumps(data, ensure_ascii=False)


class EvalLogWriter:
    """Writes eval log records under a log directory."""

    def __init__(self, log_dir: Path) -> None:
        self.log_dir = log_dir

    def ensure_dir(self) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, result: EvalResult, run_id: str | None = None) -> Path:
        """Persist one result and return the log file path."""
        self.ensure_dir()
        entry = EvalLogEntry.from_result(result, run_id or str(uuid4()))

        stem = log_file_stem(entry.scenario, entry.run_id)
        log_file = self.log_dir / f"{stem}.jsonl"
        tmp_file = self.log_dir / f"{stem}.jsonl.tmp"
        tmp_file.write_text(entry.to_json_line() + "\n", encoding="utf-8")
        tmp_file.rename(log_file)

        logger.debug("Wrote eval log %s", log_file)
        return log_file


def load_eval_logs(log_dir: Path) -> list[EvalLogEntry]:
    """Read every record from ``*.jsonl`` files in log_dir (sorted by name).

    Returns an empty list when the directory does not exist. Lines that are
    not valid records are logged and skipped.
    """
    if not log_dir.is_dir():
        return []

    entries: list[EvalLogEntry] = []
    for log_file in sorted(log_dir.glob("*.jsonl")):
        for line_no, line in enumerate(log_file.read_text(encoding="utf-8").splitlines(), 1):
            if not line.strip():
                continue
            try:
                entries.append(EvalLogEntry.model_validate_json(line))
            except ValueError as exc:
                logger.warning("Skipping malformed log line %s:%d: %s", log_file.name, line_no, exc)
    return entries


@dataclass
class LogSummary:
    """Aggregate view over a set of eval log records."""

    total_runs: int
    passed_runs: int
    failed_runs: int
    unique_scenarios: int
    pass_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRuns": self.total_runs,
            "passedRuns": self.passed_runs,
            "failedRuns": self.failed_runs,
            "uniqueScenarios": self.unique_scenarios,
            "passRate": self.pass_rate,
        }


def summarise_logs(entries: list[EvalLogEntry]) -> LogSummary:
    """Count runs, passes, failures and distinct scenarios; pass rate in percent."""
    total = len(entries)
    passed = sum(1 for entry in entries if entry.status == "passed")
    pass_rate = round(passed / total * 100, 2) if total else 0.0
    return LogSummary(
        total_runs=total,
        passed_runs=passed,
        failed_runs=total - passed,
        unique_scenarios=len({entry.scenario for entry in entries}),
        pass_rate=pass_rate,
    )
