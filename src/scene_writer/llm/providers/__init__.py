from .anthropic_provider import AnthropicProvider
from .mock_provider import LocalMockProvider
from .openai_provider import OpenAICompatibleProvider

__all__ = ["AnthropicProvider", "LocalMockProvider", "OpenAICompatibleProvider"]
