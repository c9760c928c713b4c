"""Provider client interface and the HTTP plumbing the HTTP providers share."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import requests

from ..cancellation import CancellationToken, check
from ..endpoints import clamp_timeout
from ..streaming import PartialSink
from ..types import (
    BadResponse,
    GenerationRequest,
    GenerationResult,
    MissingModel,
    ProviderKind,
    ProviderSettings,
    RequestFailed,
    RequestPreview,
)
from ..wire.common import decode_json, envelope_error_message

ERROR_SNIPPET_LIMIT = 280
JSON_CONTENT_TYPE = ("Content-Type", "application/json")

Headers = List[Tuple[str, str]]


class ProviderClient(Protocol):
    kind: ProviderKind
    supports_streaming: bool
    supports_model_discovery: bool

    def generate(
        self,
        request: GenerationRequest,
        settings: ProviderSettings,
        on_partial: Optional[PartialSink] = None,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        ...

    def list_models(self, settings: ProviderSettings) -> List[str]:
        ...

    def preview(self, request: GenerationRequest, settings: ProviderSettings) -> RequestPreview:
        ...


def validate_model(request: GenerationRequest) -> None:
    if not (request.model or "").strip():
        raise MissingModel()


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def sorted_model_ids(raw_ids: Iterable[str]) -> List[str]:
    unique = {model_id.strip() for model_id in raw_ids if isinstance(model_id, str) and model_id.strip()}
    return sorted(unique, key=lambda model_id: (model_id.casefold(), model_id))


def fallback_error_message(body: bytes, status_code: int) -> str:
    raw = (body or b"").decode("utf-8", errors="replace").strip()
    if raw:
        return f"HTTP {status_code}: {raw[:ERROR_SNIPPET_LIMIT]}"
    return f"HTTP {status_code}"


def failure_for(
    body: bytes,
    status_code: int,
    decode_error: Callable[[Any], Optional[str]] = envelope_error_message,
) -> RequestFailed:
    message = decode_error(decode_json(body))
    return RequestFailed(message or fallback_error_message(body, status_code))


def send(
    method: str,
    url: str,
    headers: Sequence[Tuple[str, str]],
    *,
    timeout_seconds: float,
    payload: Optional[Dict[str, Any]] = None,
    stream: bool = False,
    token: Optional[CancellationToken] = None,
) -> requests.Response:
    """Issues one HTTP call, mapping transport failures to RequestFailed."""
    check(token)
    timeout = clamp_timeout(timeout_seconds)
    try:
        if method == "GET":
            response = requests.get(url, headers=dict(headers), timeout=timeout)
        else:
            response = requests.post(url, headers=dict(headers), json=payload, timeout=timeout, stream=stream)
    except requests.Timeout as exc:
        raise RequestFailed(f"Request timed out after {timeout:g}s") from exc
    except requests.RequestException as exc:
        raise RequestFailed(str(exc)) from exc

    if token is not None and token.cancelled:
        response.close()
        check(token)
    return response


def read_body(response: requests.Response) -> bytes:
    try:
        return response.content or b""
    except requests.RequestException as exc:
        raise RequestFailed(str(exc)) from exc


def read_json(response: requests.Response) -> Any:
    payload = decode_json(read_body(response))
    if payload is None:
        raise BadResponse("Response body is not valid JSON")
    return payload


def iter_response_lines(response: requests.Response) -> Iterable[bytes]:
    try:
        yield from response.iter_lines()
    except requests.Timeout as exc:
        raise RequestFailed("Stream read timed out") from exc
    except requests.RequestException as exc:
        raise RequestFailed(str(exc)) from exc
