"""Dispatch from a ProviderKind to its client, with usage reconciliation."""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Mapping, Optional

from .cancellation import CancellationToken
from .providers.anthropic_provider import AnthropicProvider
from .providers.base import ProviderClient
from .providers.mock_provider import LocalMockProvider
from .providers.openai_provider import OpenAICompatibleProvider
from .streaming import PartialSink
from .types import (
    GenerationRequest,
    GenerationResult,
    ProviderError,
    ProviderKind,
    ProviderSettings,
    RequestPreview,
)
from .usage import normalize_usage

logger = logging.getLogger(__name__)


class ProviderRouter:
    def __init__(self, providers: Optional[Mapping[ProviderKind, ProviderClient]] = None) -> None:
        self.providers: Dict[ProviderKind, ProviderClient] = dict(providers or self._default_providers())

    @staticmethod
    def _default_providers() -> Dict[ProviderKind, ProviderClient]:
        return {
            ProviderKind.OPENAI_COMPATIBLE: OpenAICompatibleProvider(),
            ProviderKind.ANTHROPIC: AnthropicProvider(),
            ProviderKind.LOCAL_MOCK: LocalMockProvider(),
        }

    def client_for(self, kind: ProviderKind) -> ProviderClient:
        client = self.providers.get(kind)
        if client is None:
            raise ProviderError(f"No client registered for provider '{kind.value}'")
        return client

    def streams(self, settings: ProviderSettings) -> bool:
        return settings.enable_streaming and self.client_for(settings.provider).supports_streaming

    def supports_model_discovery(self, kind: ProviderKind) -> bool:
        client = self.providers.get(kind)
        return bool(client is not None and client.supports_model_discovery)

    def generate(
        self,
        request: GenerationRequest,
        settings: ProviderSettings,
        on_partial: Optional[PartialSink] = None,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        client = self.client_for(settings.provider)
        start = time.perf_counter()
        result = client.generate(
            request,
            settings,
            on_partial=on_partial if self.streams(settings) else None,
            token=token,
        )
        usage = normalize_usage(result.usage, request, result.text)
        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "Generated %d chars via %s:%s in %dms (tokens=%s, estimated=%s)",
            len(result.text),
            settings.provider.value,
            request.model,
            latency_ms,
            usage.total_tokens,
            usage.is_estimated,
        )
        return GenerationResult(text=result.text, usage=usage)

    def list_models(self, settings: ProviderSettings) -> List[str]:
        return self.client_for(settings.provider).list_models(settings)

    def preview(self, request: GenerationRequest, settings: ProviderSettings) -> RequestPreview:
        return self.client_for(settings.provider).preview(request, settings)
