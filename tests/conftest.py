import json

import pytest

from scene_writer.llm.types import GenerationRequest, ProviderKind, ProviderSettings


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=None, lines=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.lines = list(lines or [])
        self.closed = False

    @property
    def content(self):
        return self.text.encode("utf-8")

    def json(self):
        return json.loads(self.text)

    def iter_lines(self):
        for line in self.lines:
            yield line.encode("utf-8") if isinstance(line, str) else line

    def close(self):
        self.closed = True


class HTTPStub:
    """Records outgoing calls and answers them with queued DummyResponses."""

    def __init__(self):
        self.calls = []
        self.responses = []

    def queue(self, response):
        self.responses.append(response)
        return response

    def _answer(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        return self._answer("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._answer("GET", url, **kwargs)


@pytest.fixture
def http(monkeypatch):
    stub = HTTPStub()
    monkeypatch.setattr("scene_writer.llm.providers.base.requests.post", stub.post)
    monkeypatch.setattr("scene_writer.llm.providers.base.requests.get", stub.get)
    return stub


@pytest.fixture
def request_factory():
    def make(model="gpt-test", system="sys", user="user", temperature=0.7, max_tokens=256):
        return GenerationRequest(
            system_prompt=system,
            user_prompt=user,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    return make


@pytest.fixture
def settings_factory():
    def make(provider=ProviderKind.OPENAI_COMPATIBLE, endpoint="https://example.com/v1", **overrides):
        values = {
            "provider": provider,
            "endpoint": endpoint,
            "api_key": "secret",
            "model": "gpt-test",
            "enable_streaming": False,
            "request_timeout_seconds": 30,
        }
        values.update(overrides)
        return ProviderSettings(**values)

    return make


def sse(*events):
    """Encodes payload dicts (or raw strings) as `data:` lines."""
    lines = []
    for event in events:
        body = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {body}")
        lines.append("")
    return lines
