import pytest

from conftest import DummyResponse, sse
from scene_writer.llm.cancellation import CancellationToken
from scene_writer.llm.providers.anthropic_provider import AnthropicProvider
from scene_writer.llm.router import ProviderRouter
from scene_writer.llm.types import (
    BadResponse,
    GenerationCancelled,
    MissingModel,
    ProviderKind,
    RequestFailed,
    TokenUsage,
)


@pytest.fixture
def anthropic_settings(settings_factory):
    def make(**overrides):
        values = {"endpoint": "https://api.anthropic.com", "model": "claude-test"}
        values.update(overrides)
        return settings_factory(provider=ProviderKind.ANTHROPIC, **values)

    return make


def test_buffered_generation_joins_text_blocks(http, request_factory, anthropic_settings):
    http.queue(
        DummyResponse(
            payload={
                "content": [
                    {"type": "text", "text": "hello "},
                    {"type": "tool_use", "id": "t1", "input": {}},
                    {"text": "world"},
                ],
                "usage": {"input_tokens": 9, "output_tokens": 6},
            }
        )
    )

    result = AnthropicProvider().generate(request_factory(model="claude-test"), anthropic_settings())

    assert result.text == "hello world"
    assert result.usage == TokenUsage(9, 6, 15)

    call = http.calls[0]
    assert call["url"] == "https://api.anthropic.com/v1/messages"
    assert call["headers"]["x-api-key"] == "secret"
    assert call["headers"]["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in call["headers"]
    assert call["json"] == {
        "model": "claude-test",
        "max_tokens": 256,
        "temperature": 0.7,
        "system": "sys",
        "messages": [{"role": "user", "content": [{"type": "text", "text": "user"}]}],
        "stream": False,
    }


def test_router_keeps_reported_usage(http, request_factory, anthropic_settings):
    http.queue(
        DummyResponse(
            payload={"content": [{"type": "text", "text": "ok"}], "usage": {"input_tokens": 9, "output_tokens": 6}}
        )
    )
    result = ProviderRouter().generate(request_factory(model="claude-test"), anthropic_settings())
    assert result.usage == TokenUsage(9, 6, 15, is_estimated=False)


def test_error_status_reads_anthropic_envelope(http, request_factory, anthropic_settings):
    http.queue(
        DummyResponse(
            status_code=403,
            payload={"type": "error", "error": {"type": "permission_error", "message": "forbidden model"}},
        )
    )
    with pytest.raises(RequestFailed) as excinfo:
        AnthropicProvider().generate(request_factory(model="claude-test"), anthropic_settings())
    assert excinfo.value.detail == "forbidden model"


def test_no_text_blocks_is_bad_response(http, request_factory, anthropic_settings):
    http.queue(DummyResponse(payload={"content": [{"type": "tool_use", "id": "t1"}]}))
    with pytest.raises(BadResponse):
        AnthropicProvider().generate(request_factory(model="claude-test"), anthropic_settings())


def test_streaming_events_accumulate_and_synthesize_total(http, request_factory, anthropic_settings):
    lines = [
        "event: message_start",
        *sse({"type": "message_start", "message": {"usage": {"input_tokens": 20, "output_tokens": 1}}}),
        "event: content_block_start",
        *sse({"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}}),
        *sse({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Rain"}}),
        *sse({"type": "ping"}),
        *sse({"type": "content_block_delta", "delta": {"type": "text_delta", "text": " fell."}}),
        *sse({"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 4}}),
        *sse({"type": "message_stop"}),
        *sse({"type": "content_block_delta", "delta": {"type": "text_delta", "text": " late"}}),
    ]
    http.queue(DummyResponse(lines=lines))
    partials = []

    result = AnthropicProvider().generate(
        request_factory(model="claude-test"),
        anthropic_settings(enable_streaming=True),
        on_partial=partials.append,
    )

    assert partials == ["Rain", "Rain fell."]
    assert result.text == "Rain fell."
    assert result.usage == TokenUsage(20, 4, 24)


def test_streaming_error_event(http, request_factory, anthropic_settings):
    lines = sse(
        {"type": "content_block_delta", "delta": {"text": "Half"}},
        {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}},
    )
    http.queue(DummyResponse(lines=lines))
    with pytest.raises(RequestFailed, match="Overloaded"):
        AnthropicProvider().generate(request_factory(model="claude-test"), anthropic_settings(enable_streaming=True))


def test_list_models(http, anthropic_settings):
    http.queue(DummyResponse(payload={"data": [{"id": "claude-b"}, {"id": "claude-a"}], "has_more": False}))
    models = AnthropicProvider().list_models(anthropic_settings(endpoint="https://api.anthropic.com/v1/messages"))
    assert models == ["claude-a", "claude-b"]
    assert http.calls[0]["url"] == "https://api.anthropic.com/v1/models"
    assert "Content-Type" not in http.calls[0]["headers"]


def test_preview_headers_and_url(request_factory, anthropic_settings):
    preview = AnthropicProvider().preview(
        request_factory(model="claude-test"), anthropic_settings(endpoint="https://api.anthropic.com/v1/models")
    )
    assert preview.url == "https://api.anthropic.com/v1/messages"
    assert preview.headers == [
        ("Content-Type", "application/json"),
        ("anthropic-version", "2023-06-01"),
        ("x-api-key", "secret"),
    ]


def test_preview_without_key_omits_api_key_header(request_factory, anthropic_settings):
    preview = AnthropicProvider().preview(request_factory(model="claude-test"), anthropic_settings(api_key=""))
    assert preview.header("x-api-key") is None
    assert preview.header("anthropic-version") == "2023-06-01"


def test_null_error_field_in_stream_event(http, request_factory, anthropic_settings):
    lines = sse(
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Hi"}, "error": None},
        {"type": "message_stop"},
    )
    http.queue(DummyResponse(lines=lines))

    result = AnthropicProvider().generate(request_factory(model="claude-test"), anthropic_settings(enable_streaming=True))

    assert result.text == "Hi"


def test_null_error_field_in_buffered_message(http, request_factory, anthropic_settings):
    http.queue(DummyResponse(payload={"content": [{"type": "text", "text": "Hi"}], "error": None}))
    result = AnthropicProvider().generate(request_factory(model="claude-test"), anthropic_settings())
    assert result.text == "Hi"


def test_streaming_error_status_without_body(http, request_factory, anthropic_settings):
    http.queue(DummyResponse(status_code=529, text="", lines=sse({"type": "message_stop"})))
    partials = []

    with pytest.raises(RequestFailed) as excinfo:
        AnthropicProvider().generate(
            request_factory(model="claude-test"),
            anthropic_settings(enable_streaming=True),
            on_partial=partials.append,
        )

    assert excinfo.value.detail == "HTTP 529"
    assert partials == []


def test_missing_model_fails_before_network(http, request_factory, anthropic_settings):
    provider = AnthropicProvider()
    with pytest.raises(MissingModel):
        provider.generate(request_factory(model=""), anthropic_settings(enable_streaming=True))
    with pytest.raises(MissingModel):
        provider.preview(request_factory(model="   "), anthropic_settings())
    assert http.calls == []


def test_stream_cancelled_between_events(http, request_factory, anthropic_settings):
    lines = sse(
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Rain"}},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": " fell."}},
        {"type": "message_stop"},
    )
    response = http.queue(DummyResponse(lines=lines))
    token = CancellationToken()
    partials = []

    def on_partial(text):
        partials.append(text)
        token.cancel()

    with pytest.raises(GenerationCancelled):
        AnthropicProvider().generate(
            request_factory(model="claude-test"),
            anthropic_settings(enable_streaming=True),
            on_partial=on_partial,
            token=token,
        )

    assert partials == ["Rain"]
    assert response.closed
