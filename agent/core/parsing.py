from __future__ import annotations

import json
from typing import Any, Optional, Tuple


class ReplyParseError(ValueError):
    """Raised when model output holds no JSON value."""


def _strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped[3:]
        if stripped.lower().startswith("json"):
            stripped = stripped[len("json"):].lstrip()
        stripped = stripped.rstrip()
        if stripped.endswith("```"):
            stripped = stripped[:-3]
    return stripped.strip()


def _balanced_segment(text: str, start: int) -> Optional[str]:
    depth = 0
    in_string = False
    escape = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start: idx + 1]
    return None


def _extract_json_segment(text: str) -> Optional[str]:
    """First balanced ``{...}`` in ``text`` that decodes to a JSON object."""
    start = text.find("{")
    while start != -1:
        segment = _balanced_segment(text, start)
        if segment is not None:
            try:
                if isinstance(json.loads(segment), dict):
                    return segment
            except json.JSONDecodeError:
                pass
        start = text.find("{", start + 1)
    return None


def extract_json(raw: str) -> Tuple[Any, str]:
    """Decode model output, returning the value and the exact JSON text it came from.

    Markdown fences are tolerated, as is chatter around a single JSON object.
    The returned text carries neither.
    """
    cleaned = _strip_code_fences(raw or "")
    if not cleaned:
        raise ReplyParseError("empty reply")
    try:
        return json.loads(cleaned), cleaned
    except json.JSONDecodeError as exc:
        segment = _extract_json_segment(cleaned)
        if segment is None:
            raise ReplyParseError(f"reply is not JSON: {exc}") from exc
        return json.loads(segment), segment
