"""Pull the first JSON value out of free-form model output."""
from __future__ import annotations

import json
from typing import Any


def find_balanced_span(text: str, open_char: str = "{", close_char: str = "}") -> str | None:
    """Return the first balanced ``open_char ... close_char`` span in ``text``.

    Brackets inside JSON string literals (including escaped quotes) are not
    counted. A bracket that never closes is skipped and the scan restarts at
    the next one. Returns ``None`` when no span closes.
    """
    start = text.find(open_char)
    while start >= 0:
        span = _span_from(text, start, open_char, close_char)
        if span is not None:
            return span
        start = text.find(open_char, start + 1)
    return None


def _span_from(text: str, start: int, open_char: str, close_char: str) -> str | None:
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    return None


def _strip_code_fence(raw_text: str) -> str:
    text = raw_text.strip()
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    return text


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Decode the first balanced ``{...}`` span, ignoring surrounding prose."""
    text = _strip_code_fence(raw_text)
    span = find_balanced_span(text, "{", "}")
    if span is None:
        raise json.JSONDecodeError("object not found", text, 0)
    parsed = json.loads(span)
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("not an object", text, 0)
    return parsed


def extract_json_array(raw_text: str) -> list[Any]:
    text = _strip_code_fence(raw_text)
    span = find_balanced_span(text, "[", "]")
    if span is None:
        raise json.JSONDecodeError("array not found", text, 0)
    parsed = json.loads(span)
    if not isinstance(parsed, list):
        raise json.JSONDecodeError("not an array", text, 0)
    return parsed
