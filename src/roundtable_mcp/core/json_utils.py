"""Lenient JSON decoding for model output.

Model responses wrap JSON in markdown fences, prefix it with prose, leave
trailing commas, quote with apostrophes, or stop mid-document when they hit
the output token limit. These helpers undo each of those in isolation so
callers can try them in order. Repair is delegated to ``json_repair`` and
truncated documents to ``partial_json_parser``.
"""

import json
import re
from typing import Any

import json_repair
from partial_json_parser import Allow, MalformedJSON, PartialJSON
from partial_json_parser import loads as loads_partial

_FENCE_COMPLETE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_FENCE_OPEN = re.compile(r"```(?:json)?\s*([\s\S]*)")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_INVISIBLE = re.compile(r"[\ufeff\u200b-\u200d\u2060]")

# Incomplete strings, arrays and objects; a number cut mid-digit is dropped
_PARTIAL_ALLOW = Allow.STR | Allow.ARR | Allow.OBJ


def strip_code_fences(text: str) -> str:
    """Remove markdown fences and any prose before the first ``{``.

    Handles complete fences, fences left open by a truncated response, and
    leading commentary.
    """
    cleaned = text.strip()

    match = _FENCE_COMPLETE.search(cleaned)
    if match and match.group(1).strip():
        return match.group(1).strip()

    match = _FENCE_OPEN.search(cleaned)
    if match and not cleaned.endswith("```"):
        cleaned = match.group(1).strip()

    start = cleaned.find("{")
    if start > 0:
        cleaned = cleaned[start:]
    return cleaned


def extract_json_object(text: str) -> dict | None:
    """Extract the first balanced JSON object from text.

    Uses bracket counting instead of greedy regex to handle nested
    braces and escaped quotes correctly.
    """
    span = balanced_span(text)
    if span is None:
        return None
    try:
        value = json.loads(span, strict=False)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def balanced_span(text: str) -> str | None:
    """Text of the first brace-balanced ``{...}`` span, or ``None``."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        c = text[i]
        if escape:
            escape = False
            continue
        if c == "\\":
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def sanitize_json(text: str) -> str:
    """Drop BOM/zero-width characters and trailing commas before a closer."""
    return _TRAILING_COMMA.sub(r"\1", _INVISIBLE.sub("", text))


def loads_repaired(text: str) -> dict | None:
    """Repair near-valid JSON (bare keys, single quotes, missing commas) and decode it.

    Returns ``None`` unless the result is an object.
    """
    value = json_repair.loads(sanitize_json(text))
    return value if isinstance(value, dict) else None


def loads_lenient(text: str) -> dict | None:
    """Parse the first JSON object in ``text``, repairing it if needed."""
    cleaned = strip_code_fences(text)
    parsed = extract_json_object(cleaned)
    if parsed is not None:
        return parsed
    if "{" not in cleaned:
        return None
    return loads_repaired(balanced_span(cleaned) or cleaned)


def parse_partial_json(text: str) -> dict[str, Any] | None:
    """Parse a JSON object that may have been cut off mid-document.

    Keeps every field that was complete before the cut. Returns ``None``
    when no object prefix can be recovered.
    """
    start = text.find("{")
    if start == -1:
        return None
    try:
        value = loads_partial(_INVISIBLE.sub("", text[start:]), _PARTIAL_ALLOW)
    except (MalformedJSON, PartialJSON, json.JSONDecodeError):
        return None
    return value if isinstance(value, dict) else None
