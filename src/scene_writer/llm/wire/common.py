"""Helpers shared by the provider wire codecs."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union


def decode_json(body: Union[bytes, str, None]) -> Optional[Any]:
    if body is None:
        return None
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def envelope_error_message(payload: Any) -> Optional[str]:
    """Reads `{"error": {"message": ...}}`, a bare `{"error": "..."}` or a top-level `message`."""
    if not isinstance(payload, dict):
        return None

    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    elif isinstance(error, str) and error.strip():
        return error.strip()

    message = payload.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


def has_error_object(payload: Any) -> bool:
    """True when `error` is an object or a non-blank string; `"error": null` is not an error."""
    if not isinstance(payload, dict):
        return False
    error = payload.get("error")
    return isinstance(error, dict) or (isinstance(error, str) and bool(error.strip()))


def model_ids(payload: Any) -> List[str]:
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    ids: List[str] = []
    for item in data:
        if isinstance(item, dict) and isinstance(item.get("id"), str):
            ids.append(item["id"])
    return ids


def first_dict(items: Any) -> Dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}
