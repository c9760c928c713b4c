"""Shared generation data structures and errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class ProviderKind(str, Enum):
    OPENAI_COMPATIBLE = "openai_compatible"
    ANTHROPIC = "anthropic"
    LOCAL_MOCK = "local_mock"


@dataclass(frozen=True)
class GenerationRequest:
    system_prompt: str
    user_prompt: str
    model: str
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    is_estimated: bool = False

    def is_empty(self) -> bool:
        return self.prompt_tokens is None and self.completion_tokens is None and self.total_tokens is None


@dataclass
class GenerationResult:
    text: str
    usage: Optional[TokenUsage] = None


@dataclass(frozen=True)
class ProviderSettings:
    provider: ProviderKind
    endpoint: str
    api_key: str = ""
    model: str = ""
    temperature: float = 0.8
    max_tokens: int = 700
    enable_streaming: bool = True
    request_timeout_seconds: float = 120.0


@dataclass
class RequestPreview:
    url: str
    method: str
    headers: List[Tuple[str, str]]
    body_json: str
    body_human_readable: str
    notes: List[str] = field(default_factory=list)

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


class ProviderError(RuntimeError):
    """Provider failed to return a valid generation."""

    description = ""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(self._describe())

    def _describe(self) -> str:
        return self.description or self.detail or "Provider error."


class InvalidEndpoint(ProviderError):
    description = "Invalid endpoint URL."


class MissingModel(ProviderError):
    description = "No model selected."


class BadResponse(ProviderError):
    def _describe(self) -> str:
        return f"Unexpected provider response: {self.detail}"


class RequestFailed(ProviderError):
    def _describe(self) -> str:
        return f"Provider request failed: {self.detail}"


class GenerationCancelled(Exception):
    """Raised inside a provider call once its cancellation token is tripped."""
