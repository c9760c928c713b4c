"""Offline provider that answers from the prompt itself.

Useful for trying the writing flow without an API key: it echoes the beat
line from the rendered prompt and never touches the network.
"""

from __future__ import annotations

import time
from typing import List, Optional

from ..cancellation import CancellationToken, check
from ..preview import preview_bodies
from ..streaming import PartialSink
from ..types import (
    GenerationRequest,
    GenerationResult,
    ProviderKind,
    ProviderSettings,
    RequestFailed,
    RequestPreview,
)
from .base import validate_model

FALLBACK_BEAT = "The next moment unfolded with careful inevitability."
CONTEXT_NOTE = "(Integrated context cues from compendium and nearby scenes.)"
NOTICE = "[Local Mock Provider] Replace with a real provider in Settings to generate model output."


def _field_after(marker: str, text: str) -> str:
    index = text.find(marker)
    if index < 0:
        return ""
    for line in text[index + len(marker):].splitlines():
        if line.strip():
            return line.strip()
    return ""


class LocalMockProvider:
    kind = ProviderKind.LOCAL_MOCK
    supports_streaming = True
    supports_model_discovery = False

    def __init__(self, word_delay_seconds: float = 0.0) -> None:
        self.word_delay_seconds = word_delay_seconds

    def compose(self, request: GenerationRequest) -> str:
        beat = _field_after("BEAT:", request.user_prompt)
        parts = [beat or FALLBACK_BEAT]
        if _field_after("CONTEXT:", request.user_prompt):
            parts.append(CONTEXT_NOTE)
        parts.append(NOTICE)
        return "\n\n".join(parts)

    def generate(
        self,
        request: GenerationRequest,
        settings: ProviderSettings,
        on_partial: Optional[PartialSink] = None,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        validate_model(request)
        text = self.compose(request)
        if not settings.enable_streaming or on_partial is None:
            check(token)
            return GenerationResult(text=text)

        accumulated = ""
        for word in text.split(" "):
            check(token)
            if self.word_delay_seconds:
                time.sleep(self.word_delay_seconds)
            accumulated = f"{accumulated} {word}" if accumulated else word
            on_partial(accumulated)
        return GenerationResult(text=accumulated.strip())

    def list_models(self, settings: ProviderSettings) -> List[str]:
        raise RequestFailed("Model discovery is not available for the local mock provider.")

    def preview(self, request: GenerationRequest, settings: ProviderSettings) -> RequestPreview:
        validate_model(request)
        body_json, readable = preview_bodies(
            {
                "model": request.model,
                "system": request.system_prompt,
                "prompt": request.user_prompt,
                "temperature": request.temperature,
                "max_tokens": request.max_tokens,
            }
        )
        return RequestPreview(
            url="local://mock",
            method="LOCAL",
            headers=[],
            body_json=body_json,
            body_human_readable=readable,
            notes=["Local Mock provider is active. This request does not use network transport."],
        )
