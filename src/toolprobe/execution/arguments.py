"""Best-effort recovery of tool-call arguments from model output.

Models frequently emit function-call arguments that are not valid JSON:
single quotes, bare keys, ``key=value`` pairs, pseudo-XML parameter tags,
typographic quotes, trailing commas, unbalanced braces, or prose around a
JSON fragment. Recovery is strict-then-repair:

1. sanitize the raw text and try a strict JSON parse;
2. on failure, extract each field declared by the tool schema with a
   cascade of regular expressions;
3. coerce the resulting object field-by-field using the schema.

Everything here is pure and deterministic so it can be tested without a
live model.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from toolprobe.tools.registry import ToolSchema

logger = logging.getLogger(__name__)

ERROR_RAW_LIMIT = 200

_TAG = re.compile(r"</?.*?>")
_WHITESPACE = re.compile(r"\s+")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z0-9_]+)\s*:")
_QUOTED_KEY_EQUALS = re.compile(r'([{,]\s*)"([A-Za-z0-9_]+)"\s*=\s*')
_EQ_DOUBLE = re.compile(r'([{,]\s*)([A-Za-z0-9_]+)\s*=\s*"([^"\\]*(?:\\.[^"\\]*)*)"')
_EQ_SINGLE = re.compile(r"([{,]\s*)([A-Za-z0-9_]+)\s*=\s*'([^'\\]*(?:\\.[^'\\]*)*)'")
_EQ_BARE = re.compile(r"([{,]\s*)([A-Za-z0-9_]+)\s*=\s*([^,}\s]+)")
_LITERAL = re.compile(r"^(-?\d+(?:\.\d+)?|true|false|null)$", re.IGNORECASE)
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")

_QUOTE_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("&quot;", '"'),
    ("“", '"'),
    ("”", '"'),
    ("‘", "'"),
    ("’", "'"),
)


class ArgumentRecoveryError(ValueError):
    """Raised when no usable argument object can be recovered.

    Attributes:
        raw: The original argument text.
    """

    def __init__(self, message: str, raw: str) -> None:
        self.raw = raw
        super().__init__(message)


def truncate_for_error(raw: str, limit: int = ERROR_RAW_LIMIT) -> str:
    trimmed = raw.strip()
    if len(trimmed) <= limit:
        return trimmed
    return f"{trimmed[:limit]}…"


def _normalize_quotes(text: str) -> str:
    for source, target in _QUOTE_REPLACEMENTS:
        text = text.replace(source, target)
    return text


def _collapse_whitespace(text: str) -> str:
    text = text.replace("\r\n", " ").replace("\n", " ").replace("\t", " ")
    return _WHITESPACE.sub(" ", text)


def _escape_for_json(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def strip_markers(value: str) -> str:
    """Remove tag markup and entity/typographic quotes, collapse whitespace."""
    value = _TAG.sub(" ", value)
    value = _normalize_quotes(value)
    return _WHITESPACE.sub(" ", value).strip()


def _is_json_object(text: str) -> bool:
    try:
        return isinstance(json.loads(text), dict)
    except ValueError:
        return False


def sanitize_raw_arguments(raw: str) -> str:
    """Rewrite raw argument text into something a strict JSON parser accepts.

    Text that already is a well-formed JSON object is returned unchanged
    (apart from surrounding whitespace).
    """
    cleaned = raw.strip()
    if _is_json_object(cleaned):
        return cleaned

    cleaned = _collapse_whitespace(cleaned)
    cleaned = _normalize_quotes(cleaned)
    cleaned = _TAG.sub(" ", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    first_brace = cleaned.find("{")
    if first_brace >= 0:
        last_brace = cleaned.rfind("}")
        if last_brace > first_brace:
            cleaned = cleaned[first_brace : last_brace + 1]
        else:
            cleaned = cleaned[first_brace:]
    elif ":" in cleaned:
        cleaned = "{" + cleaned.lstrip(",").strip() + "}"

    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    cleaned = _BARE_KEY.sub(r'\1"\2":', cleaned)
    cleaned = _QUOTED_KEY_EQUALS.sub(r'\1"\2": ', cleaned)

    if "=" in cleaned:
        cleaned = _EQ_DOUBLE.sub(
            lambda m: f'{m.group(1)}"{m.group(2)}": "{_escape_for_json(m.group(3))}"', cleaned
        )
        cleaned = _EQ_SINGLE.sub(
            lambda m: f'{m.group(1)}"{m.group(2)}": "{_escape_for_json(m.group(3))}"', cleaned
        )
        cleaned = _EQ_BARE.sub(_convert_bare_pair, cleaned)

    missing = cleaned.count("{") - cleaned.count("}")
    if missing > 0:
        cleaned += "}" * missing

    return cleaned


def _convert_bare_pair(match: re.Match[str]) -> str:
    prefix, key, value = match.group(1), match.group(2), match.group(3).strip()
    if _LITERAL.match(value):
        literal = value.lower() if value.isalpha() else value
        return f'{prefix}"{key}": {literal}'
    return f'{prefix}"{key}": "{_escape_for_json(value)}"'


def _key_patterns(key: str) -> dict[str, re.Pattern[str]]:
    k = re.escape(key)
    lead = r"(?<![A-Za-z0-9_])[\"']?"
    sep = r"[\"']?\s*[:=]\s*"
    return {
        "double": re.compile(rf'{lead}{k}{sep}"([^"]*)"', re.IGNORECASE),
        "single": re.compile(rf"{lead}{k}{sep}'([^']*)'", re.IGNORECASE),
        "xml": re.compile(
            rf"<parameter[^>]*name=[\"']{k}[\"'][^>]*>([^<]*)", re.IGNORECASE
        ),
        "bare": re.compile(rf"{lead}{k}{sep}([^,}}\s]+)", re.IGNORECASE),
        "loose": re.compile(rf"(?<![A-Za-z0-9_]){k}[^A-Za-z0-9_]+([^,}}\s]+)", re.IGNORECASE),
        "json": re.compile(rf"{lead}{k}{sep}(\[[^\]]*\]|\{{[^{{}}]*\}})", re.IGNORECASE),
    }


def _first_match(
    patterns: dict[str, re.Pattern[str]],
    order: tuple[str, ...],
    texts: dict[str, str],
) -> str | None:
    for name in order:
        source = texts["tagged"] if name == "xml" else texts["plain"]
        match = patterns[name].search(source)
        if match:
            return match.group(1)
    return None


def _extract_value(texts: dict[str, str], key: str, schema_type: str) -> Any:
    patterns = _key_patterns(key)

    if schema_type in ("number", "integer"):
        raw = _first_match(patterns, ("bare", "single", "double", "xml", "loose"), texts)
        return coerce_number(strip_markers(raw)) if raw is not None else None

    if schema_type == "boolean":
        raw = _first_match(patterns, ("bare", "single", "double", "xml"), texts)
        return coerce_boolean(raw) if raw is not None else None

    if schema_type in ("array", "object"):
        raw = _first_match(patterns, ("json",), texts)
        if raw is None:
            return None
        try:
            return json.loads(sanitize_raw_arguments(raw) if raw.startswith("{") else raw)
        except ValueError:
            return None

    raw = _first_match(patterns, ("double", "single", "xml", "bare", "loose"), texts)
    return _strip_quote_artifacts(strip_markers(raw)) if raw is not None else None


def attempt_repair(raw: str, schema: ToolSchema | None) -> dict[str, Any]:
    """Extract declared fields one by one from malformed argument text.

    Returns an empty dict when the schema declares no properties or
    nothing matched.
    """
    result: dict[str, Any] = {}
    if schema is None or not schema.properties:
        return result

    tagged = _normalize_quotes(_collapse_whitespace(raw))
    texts = {"tagged": tagged, "plain": _WHITESPACE.sub(" ", _TAG.sub(" ", tagged))}

    for key, prop in schema.properties.items():
        value = _extract_value(texts, key, prop.type or "string")
        if value is not None:
            result[key] = value
    return result


def coerce_number(value: Any) -> int | float | None:
    """Numbers pass through; strings yield their first numeric substring."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and value.strip():
        match = _NUMBER.search(strip_markers(value))
        if match:
            text = match.group(0)
            return float(text) if "." in text else int(text)
    return None


def coerce_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = _strip_quote_artifacts(strip_markers(value)).lower()
        if normalized == "true":
            return True
        if normalized == "false":
            return False
    return None


def _strip_quote_artifacts(value: str) -> str:
    return value.strip().strip("\"'").strip()


def normalise_loose(value: Any) -> Any:
    """Generic cleanup: strip markers from every string leaf."""
    if isinstance(value, list):
        return [normalise_loose(entry) for entry in value]
    if isinstance(value, dict):
        return {key: normalise_loose(entry) for key, entry in value.items()}
    if isinstance(value, str):
        return strip_markers(value)
    return value


def normalise_value_by_schema(value: Any, schema: ToolSchema | None) -> Any:
    """Coerce a single value towards its declared schema type.

    Values that cannot be coerced are returned after generic cleanup, so
    the tool itself can report the type error.
    """
    if schema is None or schema.type is None:
        return normalise_loose(value)

    if schema.type in ("number", "integer"):
        coerced = coerce_number(value)
        if coerced is None:
            return normalise_loose(value)
        if schema.type == "integer" and isinstance(coerced, float) and coerced.is_integer():
            return int(coerced)
        return coerced

    if schema.type == "boolean":
        coerced = coerce_boolean(value)
        return coerced if coerced is not None else normalise_loose(value)

    if schema.type == "string":
        if not isinstance(value, str):
            return value
        cleaned = _strip_quote_artifacts(strip_markers(value))
        if schema.enum:
            for option in schema.enum:
                if isinstance(option, str) and option.lower() == cleaned.lower():
                    return option
        return cleaned

    if schema.type == "object" and isinstance(value, dict):
        if schema.properties:
            return post_process_arguments(value, schema)
        return normalise_loose(value)

    if schema.type == "array" and isinstance(value, list):
        if isinstance(schema.items, ToolSchema):
            return [normalise_value_by_schema(entry, schema.items) for entry in value]
        if isinstance(schema.items, list):
            return [
                normalise_value_by_schema(entry, schema.items[i] if i < len(schema.items) else None)
                for i, entry in enumerate(value)
            ]
        return normalise_loose(value)

    return normalise_loose(value)


def post_process_arguments(args: dict[str, Any], schema: ToolSchema | None) -> dict[str, Any]:
    """Coerce every declared field by schema; undeclared fields get generic cleanup only."""
    if schema is None or not schema.properties:
        return normalise_loose(args)

    return {
        key: normalise_value_by_schema(value, schema.property_schema(key))
        for key, value in args.items()
    }


def parse_tool_arguments(raw: Any, schema: ToolSchema | None = None) -> dict[str, Any]:
    """Recover a schema-shaped argument object from a raw tool-call payload.

    Args:
        raw: Argument text (OpenAI-style), an already structured dict
            (Gemini-style), or None/empty for "no arguments".
        schema: The tool's declared input schema, if known.

    Returns:
        Best-effort argument dict.

    Raises:
        ArgumentRecoveryError: If nothing usable could be recovered.
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return post_process_arguments(raw, schema)
    if not isinstance(raw, str):
        raise ArgumentRecoveryError(
            f"Failed to parse tool arguments: unsupported payload type {type(raw).__name__}",
            raw=repr(raw),
        )
    if not raw.strip():
        return {}

    sanitized = sanitize_raw_arguments(raw)
    try:
        parsed = json.loads(sanitized)
    except ValueError as exc:
        reason = str(exc)
    else:
        if isinstance(parsed, dict):
            return post_process_arguments(parsed, schema)
        reason = f"expected a JSON object, got {type(parsed).__name__}"

    repaired = attempt_repair(raw, schema)
    if repaired:
        logger.warning(
            "Recovered tool arguments by field extraction (%s): %s",
            reason,
            truncate_for_error(raw),
        )
        return post_process_arguments(repaired, schema)

    raise ArgumentRecoveryError(
        f"Failed to parse tool arguments: {reason}; raw={truncate_for_error(raw)}",
        raw=raw,
    )
