"""Dry-run rendering of request bodies.

`render_human_readable` is a diagnostics aid for the request preview panel,
not a wire format: nested objects become an indented outline and control
characters inside strings are made visible.
"""

from __future__ import annotations

import json
from typing import Any, List, Tuple

INDENT = "  "
NEWLINE_MARK = "↵"
TAB_MARK = "⇥"
CARRIAGE_RETURN_MARK = "␍"


def pretty_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)


def preview_bodies(payload: Any) -> Tuple[str, str]:
    """Returns (raw pretty JSON, human readable outline) for a payload."""
    raw = pretty_json(payload)
    try:
        readable = render_human_readable(json.loads(raw))
    except (TypeError, ValueError):
        readable = raw
    return raw, readable


def render_human_readable(value: Any) -> str:
    if isinstance(value, (dict, list)):
        if not value:
            return "{}" if isinstance(value, dict) else "[]"
        return "\n".join(_render_container(value, 0))
    return "\n".join(_render_scalar(value, ""))


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (dict, list)) or not value


def _render_container(value: Any, depth: int) -> List[str]:
    pad = INDENT * depth
    lines: List[str] = []
    if isinstance(value, dict):
        for key in sorted(value):
            lines.extend(_render_entry(f"{pad}{key}:", value[key], depth))
    else:
        for item in value:
            lines.extend(_render_entry(f"{pad}-", item, depth))
    return lines


def _render_entry(label: str, value: Any, depth: int) -> List[str]:
    if not _is_scalar(value):
        return [label] + _render_container(value, depth + 1)

    scalar = _render_scalar(value, INDENT * (depth + 1))
    if len(scalar) == 1:
        return [f"{label} {scalar[0]}"]
    return [label] + scalar


def _render_scalar(value: Any, pad: str) -> List[str]:
    if value is None:
        return ["null"]
    if isinstance(value, bool):
        return ["true" if value else "false"]
    if isinstance(value, dict):
        return ["{}"]
    if isinstance(value, list):
        return ["[]"]
    if isinstance(value, str):
        return _render_string(value, pad)
    return [str(value)]


def _render_string(raw: str, pad: str) -> List[str]:
    if not raw:
        return ['""']

    normalized = raw.replace("\r\n", "\n")
    if not any(ch in normalized for ch in "\n\r\t"):
        return [json.dumps(normalized, ensure_ascii=False)]

    visible = normalized.replace("\t", TAB_MARK + "\t").replace("\r", CARRIAGE_RETURN_MARK)
    segments = visible.split("\n")
    lines = [f'{pad}"']
    for index, segment in enumerate(segments):
        marker = NEWLINE_MARK if index < len(segments) - 1 else ""
        lines.append(f"{pad}{segment}{marker}")
    lines.append(f'{pad}"')
    return lines
