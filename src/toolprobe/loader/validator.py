"""Scenario loading and validation.

Scenario documents are JSON (or YAML) files, one scenario per file.
Parsing and Pydantic validation errors are collected per file as
ValidationErrorDetail entries so the CLI can report all of them at once.
"""

from __future__ import annotations

import difflib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from toolprobe.models.scenario import (
    Assertion,
    ConversationMessage,
    Expectation,
    Scenario,
    Step,
)

SCENARIO_SUFFIXES: tuple[str, ...] = (".json", ".yaml", ".yml")


def _field_names(*models: type[BaseModel]) -> list[str]:
    names: list[str] = []
    for model in models:
        for name, info in model.model_fields.items():
            names.append(info.alias or name)
    return sorted(set(names))


# Every key a scenario document may contain, used for typo suggestions
VALID_SCENARIO_FIELDS: list[str] = _field_names(
    Scenario, Step, Expectation, Assertion, ConversationMessage
)


class ScenarioLoadError(Exception):
    """Raised when scenario files cannot be loaded.

    Attributes:
        errors: Mapping of file path to its validation errors.
    """

    def __init__(self, message: str, errors: dict[str, list[ValidationErrorDetail]] | None = None) -> None:
        self.errors = errors or {}
        super().__init__(message)


@dataclass
class ValidationErrorDetail:
    """A single validation error.

    Attributes:
        field: The dotted path that caused the error.
        message: Human-readable error description.
        type: Pydantic error type string (e.g. 'missing', 'extra_forbidden').
        suggestion: 'Did you mean X?' suggestion for typos, or None.
        input_value: The invalid input value, if available.
    """

    field: str
    message: str
    type: str
    suggestion: str | None = None
    input_value: Any = field(default=None)

    def describe(self) -> str:
        suffix = f" ({self.suggestion})" if self.suggestion else ""
        return f"{self.field}: {self.message}{suffix}"


def _loc_to_field_path(loc: tuple[str | int, ...]) -> str:
    """Convert a Pydantic error loc tuple to a dotted field path."""
    return ".".join(str(part) for part in loc)


def _get_suggestion(field_name: str) -> str | None:
    """Get a 'did you mean?' suggestion for a mistyped field name."""
    matches = difflib.get_close_matches(field_name, VALID_SCENARIO_FIELDS, n=1, cutoff=0.6)
    if matches:
        return f"Did you mean '{matches[0]}'?"
    return None


def validate_scenario(raw_data: Any) -> tuple[Scenario | None, list[ValidationErrorDetail]]:
    """Validate a parsed document against the Scenario model.

    Returns:
        Tuple of (Scenario, []) on success, or (None, errors) on failure.
    """
    if not isinstance(raw_data, dict):
        return None, [
            ValidationErrorDetail(
                field="<document>",
                message="Scenario document must be an object",
                type="document_type",
            )
        ]

    try:
        return Scenario.model_validate(raw_data), []
    except ValidationError as e:
        errors: list[ValidationErrorDetail] = []
        for err in e.errors():
            loc = err.get("loc", ())
            error_type = err.get("type", "unknown")
            suggestion = None
            if error_type == "extra_forbidden" and loc:
                suggestion = _get_suggestion(str(loc[-1]))
            errors.append(
                ValidationErrorDetail(
                    field=_loc_to_field_path(loc),
                    message=err.get("msg", "Validation error"),
                    type=error_type,
                    suggestion=suggestion,
                    input_value=err.get("input"),
                )
            )
        return None, errors


def parse_scenario_text(source: str, suffix: str = ".json") -> Any:
    """Parse scenario text as JSON or YAML depending on the file suffix.

    Raises:
        ValueError: On malformed JSON or YAML.
    """
    if suffix.lower() == ".json":
        return json.loads(source)
    try:
        return yaml.safe_load(source)
    except yaml.YAMLError as exc:
        raise ValueError(str(exc)) from exc


def validate_scenario_file(filepath: Path) -> tuple[Scenario | None, list[ValidationErrorDetail]]:
    """Read, parse and validate a single scenario file."""
    source = filepath.read_text(encoding="utf-8")
    if not source.strip():
        return None, [
            ValidationErrorDetail(
                field="<document>",
                message="File is empty",
                type="empty_file",
            )
        ]

    try:
        raw_data = parse_scenario_text(source, filepath.suffix)
    except ValueError as exc:
        return None, [
            ValidationErrorDetail(
                field="<document>",
                message=str(exc),
                type="syntax_error",
            )
        ]
    return validate_scenario(raw_data)


def discover_scenario_files(scenarios_dir: Path) -> list[Path]:
    """All scenario files directly under scenarios_dir, sorted by name."""
    if not scenarios_dir.is_dir():
        return []
    return sorted(
        path
        for path in scenarios_dir.iterdir()
        if path.is_file() and path.suffix.lower() in SCENARIO_SUFFIXES
    )


def load_scenarios(scenarios_dir: Path, scenario_id: str | None = None) -> list[Scenario]:
    """Load every scenario in a directory, optionally filtered by id.

    Raises:
        ScenarioLoadError: If any file is invalid or two files share an id.
    """
    scenarios: list[Scenario] = []
    failed: dict[str, list[ValidationErrorDetail]] = {}
    seen: dict[str, Path] = {}

    for path in discover_scenario_files(scenarios_dir):
        scenario, errors = validate_scenario_file(path)
        if errors or scenario is None:
            failed[str(path)] = errors
            continue
        if scenario.id in seen:
            failed[str(path)] = [
                ValidationErrorDetail(
                    field="id",
                    message=f"Duplicate scenario id '{scenario.id}' (also in {seen[scenario.id].name})",
                    type="duplicate_id",
                )
            ]
            continue
        seen[scenario.id] = path
        if scenario_id is None or scenario.id == scenario_id:
            scenarios.append(scenario)

    if failed:
        raise ScenarioLoadError(
            f"{len(failed)} scenario file(s) failed validation", errors=failed
        )
    return scenarios
