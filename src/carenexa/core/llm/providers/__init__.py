"""LLM provider implementations."""

from carenexa.core.llm.providers.anthropic import AnthropicProvider
from carenexa.core.llm.providers.mock import MockProvider
from carenexa.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "MockProvider", "OpenAIProvider"]
