"""Anthropic Messages API encoding.

Pure data transformation; the HTTP side lives in providers/anthropic_provider.py.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..streaming import StreamChunk
from ..types import GenerationRequest, TokenUsage
from .common import as_int, decode_json, envelope_error_message, has_error_object, model_ids

ANTHROPIC_VERSION = "2023-06-01"
STREAM_SENTINEL = "[DONE]"
KNOWN_SUFFIXES = ("/v1/messages", "/v1/models", "/messages", "/models")
MESSAGES_OPERATION = "messages"
MODELS_OPERATION = "models"


def encode_messages_request(request: GenerationRequest, *, stream: bool) -> Dict[str, Any]:
    return {
        "model": request.model,
        "max_tokens": request.max_tokens,
        "temperature": request.temperature,
        "system": request.system_prompt,
        "messages": [
            {
                "role": "user",
                "content": [{"type": "text", "text": request.user_prompt}],
            }
        ],
        "stream": stream,
    }


def auth_headers(api_key: str) -> List[tuple[str, str]]:
    headers = [("anthropic-version", ANTHROPIC_VERSION)]
    key = (api_key or "").strip()
    if key:
        headers.append(("x-api-key", key))
    return headers


def usage_from_payload(usage: Any) -> Optional[TokenUsage]:
    """Raw input/output counts; totals are synthesized once the response is complete."""
    if not isinstance(usage, dict):
        return None
    parsed = TokenUsage(
        prompt_tokens=as_int(usage.get("input_tokens")),
        completion_tokens=as_int(usage.get("output_tokens")),
    )
    return None if parsed.is_empty() else parsed


def with_synthesized_total(usage: Optional[TokenUsage]) -> Optional[TokenUsage]:
    if usage is None:
        return None
    prompt, completion = usage.prompt_tokens, usage.completion_tokens
    if prompt is not None and completion is not None:
        total: Optional[int] = prompt + completion
    elif prompt is not None:
        total = prompt
    else:
        total = completion
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total,
        is_estimated=usage.is_estimated,
    )


def _is_text_block(block: Any) -> bool:
    if not isinstance(block, dict) or not isinstance(block.get("text"), str):
        return False
    block_type = block.get("type")
    return block_type is None or block_type == "text"


def decode_message_text(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if not isinstance(content, list):
        return None
    text = "".join(block["text"] for block in content if _is_text_block(block)).strip()
    return text or None


def decode_message_usage(payload: Any) -> Optional[TokenUsage]:
    if not isinstance(payload, dict):
        return None
    return with_synthesized_total(usage_from_payload(payload.get("usage")))


def decode_error(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    if payload.get("type") != "error" and not has_error_object(payload):
        return None
    return envelope_error_message(payload) or "Unknown provider error"


def decode_stream_event(payload_text: str) -> Optional[StreamChunk]:
    event = decode_json(payload_text)
    if not isinstance(event, dict):
        return None

    error = decode_error(event)
    if error:
        return StreamChunk(error=error)

    usage = usage_from_payload(event.get("usage"))
    message = event.get("message")
    if usage is None and isinstance(message, dict):
        usage = usage_from_payload(message.get("usage"))

    text = ""
    delta = event.get("delta")
    block = event.get("content_block")
    if isinstance(delta, dict) and isinstance(delta.get("text"), str) and delta["text"]:
        text = delta["text"]
    elif _is_text_block(block):
        text = block["text"]

    return StreamChunk(text=text, usage=usage, done=event.get("type") == "message_stop")


def decode_models(payload: Any) -> List[str]:
    return model_ids(payload)
