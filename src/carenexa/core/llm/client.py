"""Streaming assistant client: the bridge between the transcript and the provider."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from carenexa.core.llm.provider import (
    ChatMessage,
    LLMProvider,
    ProviderError,
    ProviderResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class StreamCallbacks:
    """Callback hooks for consumers that prefer events over iteration."""

    on_start: Callable[[], None] | None = None
    on_token: Callable[[str], None] | None = None
    on_complete: Callable[[str], None] | None = None
    on_error: Callable[[Exception], None] | None = None


class StreamingClient:
    """Fetches replies from the remote model, streamed as cumulative text or whole."""

    def __init__(
        self,
        provider: LLMProvider,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> None:
        self.provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def model(self) -> str:
        return self.provider.model

    async def stream_reply(self, messages: list[ChatMessage]) -> AsyncIterator[str]:
        """Yield the text received so far after every chunk.

        The last value yielded is the complete reply. A reply with no text
        at all is treated as a failure.

        Raises:
            ProviderError: On any transport or service failure.
        """
        start = time.monotonic()
        text = ""
        chunk_count = 0
        async for chunk in self.provider.stream(
            messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        ):
            text += chunk
            chunk_count += 1
            yield text

        if not text:
            raise ProviderError("Remote model returned an empty response")

        logger.info(
            "Assistant reply streamed: model=%s, chunks=%d, chars=%d, latency=%.0fms",
            self.model,
            chunk_count,
            len(text),
            (time.monotonic() - start) * 1000,
        )

    async def complete(self, messages: list[ChatMessage]) -> ProviderResponse:
        """Request the whole reply in one call.

        Raises:
            ProviderError: On any transport or service failure, or an empty reply.
        """
        response = await self.provider.generate(
            messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        if not response.content:
            raise ProviderError("Remote model returned an empty response")

        logger.info(
            "Assistant reply received: model=%s, tokens_in=%d, tokens_out=%d, latency=%.0fms",
            response.model,
            response.input_tokens,
            response.output_tokens,
            response.latency_ms,
        )
        return response


async def run_with_callbacks(
    replies: AsyncIterator[str],
    callbacks: StreamCallbacks,
) -> str | None:
    """Drive a cumulative-text stream through callback hooks.

    Returns the final text, or None after reporting the error through
    ``on_error``. Exactly one of ``on_complete`` / ``on_error`` fires.
    """
    if callbacks.on_start:
        callbacks.on_start()
    text = ""
    try:
        async for text in replies:
            if callbacks.on_token:
                callbacks.on_token(text)
    except ProviderError as exc:
        if callbacks.on_error:
            callbacks.on_error(exc)
        return None
    if callbacks.on_complete:
        callbacks.on_complete(text)
    return text
