"""Endpoint normalization shared by the HTTP providers."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

from .types import InvalidEndpoint

MIN_TIMEOUT_SECONDS = 1.0
MAX_TIMEOUT_SECONDS = 3600.0


def clamp_timeout(seconds: float) -> float:
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        value = MIN_TIMEOUT_SECONDS
    return min(max(value, MIN_TIMEOUT_SECONDS), MAX_TIMEOUT_SECONDS)


def _strip_suffix(path: str, suffixes: Iterable[str]) -> str:
    for suffix in sorted(suffixes, key=len, reverse=True):
        if suffix and path.endswith(suffix):
            return path[: -len(suffix)]
    return path


def make_base_v1_url(endpoint: str, removing_suffixes: Iterable[str] = ()) -> str:
    """Returns the `.../v1` base for a user supplied endpoint.

    The endpoint may already carry `/v1` or an operation suffix such as
    `/chat/completions`; either way the result ends in exactly one `/v1`.
    """
    trimmed = (endpoint or "").strip()
    if not trimmed:
        raise InvalidEndpoint()

    try:
        parts = urlsplit(trimmed)
    except ValueError as exc:
        raise InvalidEndpoint(str(exc)) from exc
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise InvalidEndpoint(trimmed)

    path = parts.path.rstrip("/")
    path = _strip_suffix(path, removing_suffixes).rstrip("/")
    while path.endswith("/v1/v1"):
        path = path[: -len("/v1")]

    if not path.endswith("/v1"):
        path = f"{path}/v1"

    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


def operation_url(endpoint: str, operation: str, removing_suffixes: Iterable[str] = ()) -> str:
    base = make_base_v1_url(endpoint, removing_suffixes)
    parts = urlsplit(base)
    path = f"{parts.path}/{operation.strip('/')}"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))
