"""OpenAI-compatible chat-completions encoding.

Pure data transformation; the HTTP side lives in providers/openai_provider.py.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..streaming import StreamChunk
from ..types import GenerationRequest, TokenUsage
from .common import as_int, decode_json, envelope_error_message, first_dict, has_error_object, model_ids

STREAM_SENTINEL = "[DONE]"
KNOWN_SUFFIXES = ("/chat/completions", "/completions", "/models")
CHAT_OPERATION = "chat/completions"
MODELS_OPERATION = "models"


def encode_chat_request(request: GenerationRequest, *, stream: bool) -> Dict[str, Any]:
    return {
        "model": request.model,
        "messages": [
            {"role": "system", "content": request.system_prompt},
            {"role": "user", "content": request.user_prompt},
        ],
        "temperature": request.temperature,
        "max_tokens": request.max_tokens,
        "stream": stream,
    }


def auth_headers(api_key: str) -> List[tuple[str, str]]:
    key = (api_key or "").strip()
    if not key:
        return []
    return [("Authorization", f"Bearer {key}")]


def decode_usage(payload: Any) -> Optional[TokenUsage]:
    if not isinstance(payload, dict):
        return None
    usage = payload.get("usage")
    if not isinstance(usage, dict):
        return None
    parsed = TokenUsage(
        prompt_tokens=as_int(usage.get("prompt_tokens")),
        completion_tokens=as_int(usage.get("completion_tokens")),
        total_tokens=as_int(usage.get("total_tokens")),
    )
    return None if parsed.is_empty() else parsed


def decode_completion_text(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    message = first_dict(payload.get("choices")).get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()


def decode_error(payload: Any) -> Optional[str]:
    if not has_error_object(payload):
        return None
    return envelope_error_message(payload) or "Unknown provider error"


def decode_stream_chunk(payload_text: str) -> Optional[StreamChunk]:
    payload = decode_json(payload_text)
    if not isinstance(payload, dict):
        return None

    error = decode_error(payload)
    if error:
        return StreamChunk(error=error)

    choice = first_dict(payload.get("choices"))
    delta = choice.get("delta")
    text = ""
    if isinstance(delta, dict) and isinstance(delta.get("content"), str):
        text = delta["content"]
    return StreamChunk(text=text, usage=decode_usage(payload))


def decode_models(payload: Any) -> List[str]:
    return model_ids(payload)
