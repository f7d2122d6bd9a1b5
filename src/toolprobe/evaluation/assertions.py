"""Assertion and argument checks producing human-readable failure strings.

Mismatches are data, never exceptions: each check returns a failure
message (or None / an empty list when the expectation holds).
"""

from __future__ import annotations

import json
from typing import Any

from toolprobe.evaluation.paths import (
    MISSING,
    deep_equal,
    get_by_path,
    resolve_value,
    to_json,
)
from toolprobe.models.scenario import Assertion


def _bool(value: bool) -> str:
    return json.dumps(value)


def _type_name(value: Any) -> str:
    if value is MISSING:
        return "undefined"
    if value is None or isinstance(value, dict):
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string" if isinstance(value, str) else type(value).__name__


def evaluate_assertion(
    assertion: Assertion, value: Any, captures: dict[str, Any]
) -> str | None:
    """Check one assertion against an already-resolved value.

    Predicates run in the order equals, contains, minLength, exists, isNull
    and the first violation is returned.
    """
    path = assertion.path

    if assertion.has_equals:
        expected = resolve_value(assertion.equals, captures)
        if not deep_equal(value, expected):
            return f"expected {path} to equal {to_json(expected)} but received {to_json(value)}"

    if assertion.contains is not None:
        expected = resolve_value(assertion.contains, captures)
        if not isinstance(value, str) or not isinstance(expected, str) or expected not in value:
            shown = "undefined" if expected is MISSING else expected
            return f'expected {path} to contain "{shown}" but received {to_json(value)}'

    if assertion.min_length is not None:
        if not isinstance(value, list) or len(value) < assertion.min_length:
            received = len(value) if isinstance(value, list) else _type_name(value)
            return f"expected {path} to have length >= {assertion.min_length} but received {received}"

    if assertion.exists is not None:
        exists = (
            value is not MISSING
            and value is not None
            and not (isinstance(value, str) and value.strip() == "")
        )
        if exists != assertion.exists:
            return (
                f"expected {path} existence to be {_bool(assertion.exists)} "
                f"but received {_bool(exists)}"
            )

    if assertion.is_null is not None:
        is_null = value is None
        if is_null != assertion.is_null:
            return (
                f"expected {path} null state to be {_bool(assertion.is_null)} "
                f"but received {_bool(is_null)}"
            )

    return None


def run_assertions(
    assertions: list[Assertion], response: Any, captures: dict[str, Any]
) -> list[str]:
    """Evaluate every assertion against a response; one failure line per violated assertion."""
    failures: list[str] = []
    for assertion in assertions:
        value = get_by_path(response, assertion.path)
        failure = evaluate_assertion(assertion, value, captures)
        if failure:
            failures.append(failure)
    return failures


def apply_captures(
    capture: dict[str, str], response: Any, captures: dict[str, Any]
) -> None:
    """Store each captured path value from response into the capture set."""
    for token, path in capture.items():
        captures[token] = get_by_path(response, path)


def compare_arguments(expected: dict[str, Any], actual: dict[str, Any]) -> list[str]:
    """Check that every expected argument is present in actual with an equal value."""
    issues: list[str] = []
    for key, expected_value in expected.items():
        if key not in actual:
            issues.append(f"missing argument {key}")
            continue
        actual_value = actual[key]
        if not deep_equal(actual_value, expected_value):
            issues.append(
                f"argument {key} expected {to_json(expected_value)} "
                f"but received {to_json(actual_value)}"
            )
    return issues
