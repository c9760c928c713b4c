"""Token usage reconciliation.

Providers report usage unevenly: some omit it, some send only one side, and
streamed responses may never include it. Every completed generation still gets
a TokenUsage; counts the provider did not report are filled in with a local
estimate and the result is flagged `is_estimated`.
"""

from __future__ import annotations

import math
from typing import Optional

from .types import GenerationRequest, TokenUsage

CHARS_PER_TOKEN = 4
TOKENS_PER_WORD = 1.3


def estimate_tokens(text: str) -> int:
    if not text or not text.strip():
        return 0
    by_chars = math.ceil(len(text) / CHARS_PER_TOKEN)
    by_words = math.ceil(len(text.split()) * TOKENS_PER_WORD)
    return max(1, by_chars, by_words)


def prompt_text(request: GenerationRequest) -> str:
    return "\n\n".join(part for part in (request.system_prompt, request.user_prompt) if part)


def estimated_usage(request: GenerationRequest, completion_text: str) -> TokenUsage:
    prompt_tokens = estimate_tokens(prompt_text(request))
    completion_tokens = estimate_tokens(completion_text)
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
        is_estimated=True,
    )


def live_usage(request: GenerationRequest, partial_text: str) -> TokenUsage:
    """Estimated snapshot published while a response is still streaming."""
    return estimated_usage(request, partial_text)


def normalize_usage(
    provider_usage: Optional[TokenUsage],
    request: GenerationRequest,
    completion_text: str,
) -> TokenUsage:
    if provider_usage is None or provider_usage.is_empty():
        return estimated_usage(request, completion_text)

    estimated = False
    prompt_tokens = provider_usage.prompt_tokens
    if prompt_tokens is None:
        prompt_tokens = estimate_tokens(prompt_text(request))
        estimated = True

    completion_tokens = provider_usage.completion_tokens
    if completion_tokens is None:
        completion_tokens = estimate_tokens(completion_text)
        estimated = True

    # A reported total that disagrees with its parts is replaced by the sum.
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
        is_estimated=estimated or provider_usage.is_estimated,
    )
