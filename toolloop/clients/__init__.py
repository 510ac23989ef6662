"""Model provider implementations."""

from toolloop.clients.anthropic import AnthropicConfig, AnthropicProvider
from toolloop.clients.stub import StubConfig, StubProvider, StubRule

__all__ = ["AnthropicConfig", "AnthropicProvider", "StubConfig", "StubProvider", "StubRule"]
