"""Path resolution, capture interpolation, and structural equality.

Responses are arbitrary JSON-compatible values. A path that does not
resolve yields MISSING (the "undefined" of a JSON document), which is
distinct from an explicit null (None).
"""

from __future__ import annotations

import json
import re
from typing import Any


class _Missing:
    """Sentinel for a value that does not exist."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_INDEXED_SEGMENT = re.compile(r"(\w+)\[(\d+)\]")
_TOKEN = re.compile(r"\{\{(.*?)\}\}")
_EXACT_TOKEN = re.compile(r"^\{\{(.*?)\}\}$")


def is_missing(value: Any) -> bool:
    return value is MISSING


def get_by_path(data: Any, path: str) -> Any:
    """Walk a dotted path such as ``customer.history[0].points``.

    ``name[N]`` indexes list property ``name``; ``length`` on a list returns
    its length. Returns MISSING instead of raising when any intermediate is
    absent or null.
    """
    if not path:
        return MISSING

    current: Any = data
    for segment in path.split("."):
        if current is None or current is MISSING:
            return MISSING

        indexed = _INDEXED_SEGMENT.search(segment)
        if indexed:
            key, index = indexed.group(1), int(indexed.group(2))
            container = current.get(key, MISSING) if isinstance(current, dict) else MISSING
            if not isinstance(container, list) or index >= len(container):
                return MISSING
            current = container[index]
            continue

        if isinstance(current, list):
            if segment == "length":
                current = len(current)
            elif segment.isdigit() and int(segment) < len(current):
                current = current[int(segment)]
            else:
                return MISSING
            continue

        if isinstance(current, dict):
            current = current.get(segment, MISSING)
        else:
            return MISSING

    return current


def to_json(value: Any) -> str:
    """JSON rendering used in failure messages; MISSING renders as ``undefined``."""
    if value is MISSING:
        return "undefined"
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(value)


def stringify(value: Any) -> str:
    """String form of a captured value for template substitution."""
    if value is MISSING:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return json.dumps(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def interpolate(template: Any, captures: dict[str, Any]) -> Any:
    """Replace every ``{{token}}`` in string leaves with captured values.

    Unset tokens become empty strings. Lists and dicts are walked
    recursively; other leaves are returned unchanged.
    """
    if isinstance(template, str):
        def _substitute(match: re.Match[str]) -> str:
            value = captures.get(match.group(1).strip(), MISSING)
            return "" if value is MISSING else stringify(value)

        return _TOKEN.sub(_substitute, template)

    if isinstance(template, list):
        return [interpolate(item, captures) for item in template]

    if isinstance(template, dict):
        return {key: interpolate(value, captures) for key, value in template.items()}

    return template


def resolve_value(value: Any, captures: dict[str, Any]) -> Any:
    """Resolve an assertion operand.

    A string that is exactly ``{{token}}`` becomes the captured value itself
    (keeping its type); anything else is returned as-is.
    """
    if isinstance(value, str):
        match = _EXACT_TOKEN.match(value)
        if match:
            return captures.get(match.group(1).strip(), MISSING)
    return value


def _kind(value: Any) -> str:
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def deep_equal(left: Any, right: Any) -> bool:
    """Structural equality for JSON-compatible values.

    Objects compare equal when they have the same number of keys and every
    key of ``left`` maps to an equal value in ``right``.
    """
    left_kind, right_kind = _kind(left), _kind(right)
    if left_kind != right_kind:
        return False

    if left_kind == "array":
        if len(left) != len(right):
            return False
        return all(deep_equal(a, b) for a, b in zip(left, right))

    if left_kind == "object":
        if not isinstance(left, dict) or not isinstance(right, dict):
            return left == right
        if len(left) != len(right):
            return False
        return all(deep_equal(value, right.get(key, MISSING)) for key, value in left.items())

    if left_kind in ("undefined", "null"):
        return True

    return left == right
