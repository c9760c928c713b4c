"""OpenAI-compatible chat-completions provider (OpenAI, OpenRouter, LM Studio, Ollama)."""

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
    RequestFailed,
    RequestPreview,
)
from ..wire import openai_wire
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


class OpenAICompatibleProvider:
    kind = ProviderKind.OPENAI_COMPATIBLE
    supports_streaming = True
    supports_model_discovery = True

    def _chat_url(self, settings: ProviderSettings) -> str:
        return operation_url(settings.endpoint, openai_wire.CHAT_OPERATION, openai_wire.KNOWN_SUFFIXES)

    def _models_url(self, settings: ProviderSettings) -> str:
        return operation_url(settings.endpoint, openai_wire.MODELS_OPERATION, openai_wire.KNOWN_SUFFIXES)

    @staticmethod
    def _headers(settings: ProviderSettings, include_content_type: bool = True) -> Headers:
        headers: Headers = [JSON_CONTENT_TYPE] if include_content_type else []
        headers.extend(openai_wire.auth_headers(settings.api_key))
        return headers

    def generate(
        self,
        request: GenerationRequest,
        settings: ProviderSettings,
        on_partial: Optional[PartialSink] = None,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        validate_model(request)
        url = self._chat_url(settings)
        stream = settings.enable_streaming
        payload = openai_wire.encode_chat_request(request, stream=stream)

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
                raise failure_for(read_body(response), response.status_code, openai_wire.decode_error)
            if stream:
                return self._consume_stream(response, on_partial, token)
            return self._decode_buffered(response, token)
        finally:
            response.close()

    def _decode_buffered(self, response, token: Optional[CancellationToken]) -> GenerationResult:
        data = read_json(response)
        check(token)

        error = openai_wire.decode_error(data)
        if error:
            raise RequestFailed(error)

        text = openai_wire.decode_completion_text(data)
        if not text:
            raise BadResponse("No completion content in response")
        return GenerationResult(text=text, usage=openai_wire.decode_usage(data))

    def _consume_stream(
        self,
        response,
        on_partial: Optional[PartialSink],
        token: Optional[CancellationToken],
    ) -> GenerationResult:
        outcome = consume_event_stream(
            iter_response_lines(response),
            openai_wire.decode_stream_chunk,
            sentinel=openai_wire.STREAM_SENTINEL,
            on_partial=on_partial,
            token=token,
        )
        return GenerationResult(text=outcome.text, usage=outcome.usage)

    def list_models(self, settings: ProviderSettings) -> List[str]:
        response = send(
            "GET",
            self._models_url(settings),
            self._headers(settings, include_content_type=False),
            timeout_seconds=settings.request_timeout_seconds,
        )
        try:
            if not is_success(response.status_code):
                raise failure_for(read_body(response), response.status_code, openai_wire.decode_error)
            data = read_json(response)
        finally:
            response.close()

        error = openai_wire.decode_error(data)
        if error:
            raise RequestFailed(error)
        return sorted_model_ids(openai_wire.decode_models(data))

    def preview(self, request: GenerationRequest, settings: ProviderSettings) -> RequestPreview:
        validate_model(request)
        payload = openai_wire.encode_chat_request(request, stream=settings.enable_streaming)
        body_json, readable = preview_bodies(payload)
        return RequestPreview(
            url=self._chat_url(settings),
            method="POST",
            headers=self._headers(settings),
            body_json=body_json,
            body_human_readable=readable,
        )
