"""Anthropic Claude provider."""

from __future__ import annotations

import time
from typing import AsyncIterator

import anthropic

from carenexa.core.llm.provider import (
    ChatMessage,
    ProviderError,
    ProviderResponse,
    split_system,
)


class AnthropicProvider:
    """Claude provider using the Anthropic SDK."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5-20250929") -> None:
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model

    @staticmethod
    def _as_payload(messages: list[ChatMessage]) -> tuple[str, list[dict[str, str]]]:
        system, dialogue = split_system(messages)
        # The Messages API wants the dialogue to open with a user turn.
        while dialogue and dialogue[0].role != "user":
            dialogue = dialogue[1:]
        return system, [{"role": m.role, "content": m.content} for m in dialogue]

    async def generate(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> ProviderResponse:
        system, dialogue = self._as_payload(messages)
        start = time.monotonic()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=dialogue,
            )
        except anthropic.AnthropicError as exc:
            raise ProviderError(f"{type(exc).__name__}: {exc}") from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        content = response.content[0].text if response.content else ""
        return ProviderResponse(
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
            latency_ms=elapsed_ms,
        )

    async def stream(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        system, dialogue = self._as_payload(messages)
        try:
            async with self.client.messages.stream(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=dialogue,
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.AnthropicError as exc:
            raise ProviderError(f"{type(exc).__name__}: {exc}") from exc
