"""Mock LLM provider for testing."""

from __future__ import annotations

from typing import AsyncIterator

from carenexa.core.llm.provider import ChatMessage, ProviderError, ProviderResponse


class MockProvider:
    """Mock provider for testing: returns a canned response.

    ``chunks`` controls how the canned response is streamed. With
    ``fail_after`` set, streaming raises ``ProviderError`` after that many
    chunks (0 fails before the first chunk).
    """

    def __init__(
        self,
        response_content: str = "Mock LLM response.",
        *,
        chunks: list[str] | None = None,
        fail_after: int | None = None,
        model: str = "mock",
    ) -> None:
        self.response_content = response_content
        self.chunks = chunks
        self.fail_after = fail_after
        self.model = model
        self.last_messages: list[ChatMessage] = []
        self.call_count: int = 0

    def _chunks(self) -> list[str]:
        if self.chunks is not None:
            return self.chunks
        words = self.response_content.split(" ")
        return [w if i == 0 else " " + w for i, w in enumerate(words)]

    async def generate(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> ProviderResponse:
        self.last_messages = list(messages)
        self.call_count += 1
        if self.fail_after is not None:
            raise ProviderError("Mock provider configured to fail")
        return ProviderResponse(
            content=self.response_content,
            input_tokens=sum(len(m.content.split()) for m in messages),
            output_tokens=len(self.response_content.split()),
            model=self.model,
            latency_ms=0.0,
        )

    async def stream(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        self.last_messages = list(messages)
        self.call_count += 1
        chunks = self._chunks()
        if self.fail_after is None:
            for chunk in chunks:
                yield chunk
            return
        for chunk in chunks[: self.fail_after]:
            yield chunk
        raise ProviderError("Mock provider stream interrupted")
