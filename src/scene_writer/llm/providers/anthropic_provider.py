"""Anthropic Messages API provider."""

from __future__ import annotations

from typing import List, Optional

from ..cancellation import CancellationToken, check
from ..endpoints import operation_url
from ..preview import preview_bodies
from ..streaming import PartialSink, consume_event_stream
from ..types import (
    BadResponse,
    GenerationRequest,
    GenerationResult,
    ProviderKind,
    ProviderSettings,
    RequestPreview,
)
from ..wire import anthropic_wire
from .base import (
    JSON_CONTENT_TYPE,
    Headers,
    failure_for,
    is_success,
    iter_response_lines,
    read_body,
    read_json,
    send,
    sorted_model_ids,
    validate_model,
)


class AnthropicProvider:
    kind = ProviderKind.ANTHROPIC
    supports_streaming = True
    supports_model_discovery = True

    def _messages_url(self, settings: ProviderSettings) -> str:
        return operation_url(settings.endpoint, anthropic_wire.MESSAGES_OPERATION, anthropic_wire.KNOWN_SUFFIXES)

    def _models_url(self, settings: ProviderSettings) -> str:
        return operation_url(settings.endpoint, anthropic_wire.MODELS_OPERATION, anthropic_wire.KNOWN_SUFFIXES)

    @staticmethod
    def _headers(settings: ProviderSettings, include_content_type: bool = True) -> Headers:
        headers: Headers = [JSON_CONTENT_TYPE] if include_content_type else []
        headers.extend(anthropic_wire.auth_headers(settings.api_key))
        return headers

    def generate(
        self,
        request: GenerationRequest,
        settings: ProviderSettings,
        on_partial: Optional[PartialSink] = None,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        validate_model(request)
        url = self._messages_url(settings)
        stream = settings.enable_streaming
        payload = anthropic_wire.encode_messages_request(request, stream=stream)

        response = send(
            "POST",
            url,
            self._headers(settings),
            payload=payload,
            timeout_seconds=settings.request_timeout_seconds,
            stream=stream,
            token=token,
        )
        try:
            if not is_success(response.status_code):
                raise failure_for(read_body(response), response.status_code)
            if stream:
                outcome = consume_event_stream(
                    iter_response_lines(response),
                    anthropic_wire.decode_stream_event,
                    sentinel=anthropic_wire.STREAM_SENTINEL,
                    on_partial=on_partial,
                    token=token,
                )
                return GenerationResult(
                    text=outcome.text,
                    usage=anthropic_wire.with_synthesized_total(outcome.usage),
                )

            data = read_json(response)
        finally:
            response.close()

        check(token)
        text = anthropic_wire.decode_message_text(data)
        if not text:
            raise BadResponse("No completion content in response")
        return GenerationResult(text=text, usage=anthropic_wire.decode_message_usage(data))

    def list_models(self, settings: ProviderSettings) -> List[str]:
        response = send(
            "GET",
            self._models_url(settings),
            self._headers(settings, include_content_type=False),
            timeout_seconds=settings.request_timeout_seconds,
        )
        try:
            if not is_success(response.status_code):
                raise failure_for(read_body(response), response.status_code)
            data = read_json(response)
        finally:
            response.close()
        return sorted_model_ids(anthropic_wire.decode_models(data))

    def preview(self, request: GenerationRequest, settings: ProviderSettings) -> RequestPreview:
        validate_model(request)
        payload = anthropic_wire.encode_messages_request(request, stream=settings.enable_streaming)
        body_json, readable = preview_bodies(payload)
        return RequestPreview(
            url=self._messages_url(settings),
            method="POST",
            headers=self._headers(settings),
            body_json=body_json,
            body_human_readable=readable,
        )
