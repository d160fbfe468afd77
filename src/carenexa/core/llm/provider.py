"""LLM provider protocol: abstract interface for the remote assistant model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Protocol, runtime_checkable

# Values that ship in sample .env files and never authenticate.
PLACEHOLDER_API_KEYS = frozenset({"", "your_api_key_here"})


class ProviderError(Exception):
    """Raised when the remote model cannot be reached or rejects the request."""


@dataclass
class ChatMessage:
    """One turn of conversation history as sent to a provider."""

    role: str  # 'system' | 'user' | 'assistant'
    content: str


@dataclass
class ProviderResponse:
    """Response from an LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for remote assistant calls."""

    model: str

    async def generate(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> ProviderResponse: ...

    def stream(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        """Yield incremental text chunks (not cumulative)."""
        ...


def split_system(messages: list[ChatMessage]) -> tuple[str, list[ChatMessage]]:
    """Separate system messages from the dialogue turns."""
    system = "\n\n".join(m.content for m in messages if m.role == "system")
    dialogue = [m for m in messages if m.role != "system"]
    return system, dialogue


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
    base_url: str | None = None,
) -> LLMProvider:
    """Factory function to create an LLM provider by name.

    Args:
        provider_name: "gemini", "anthropic", "openai", or "mock"
        api_key: API key for the provider.
        model: Model identifier override.
        base_url: Endpoint override (Gemini's OpenAI-compatible endpoint).

    Returns:
        An LLMProvider instance.

    Raises:
        ProviderError: If a remote provider has no usable credential.
        ValueError: If the provider name is unknown.
    """
    if provider_name != "mock" and api_key.strip() in PLACEHOLDER_API_KEYS:
        raise ProviderError(f"No valid API key configured for provider '{provider_name}'")

    if provider_name == "gemini":
        from carenexa.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key,
            model=model or "gemini-2.0-flash",
            base_url=base_url,
        )
    elif provider_name == "anthropic":
        from carenexa.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=model or "claude-sonnet-4-5-20250929")
    elif provider_name == "openai":
        from carenexa.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key, model=model or "gpt-4o", base_url=base_url)
    elif provider_name == "mock":
        from carenexa.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
