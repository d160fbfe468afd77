"""Tests for the offline responder."""

from __future__ import annotations

import asyncio

import pytest

from carenexa.domains.health.assistant.fallback import (
    GENERIC_RESPONSE,
    GREETING_RESPONSE,
    OFFLINE_NOTE,
    fallback_response,
    last_user_text,
    stream_words,
)
from carenexa.domains.health.assistant.transcript import Message


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _conversation(runtime, *user_texts: str) -> list[Message]:
    messages = [Message("system-1", "system", "prompt", runtime.now())]
    for i, text in enumerate(user_texts):
        messages.append(Message(f"u{i}", "user", text, runtime.now()))
        messages.append(Message(f"a{i}", "assistant", "reply", runtime.now()))
    return messages[:-1]


class TestFallbackResponse:
    def test_greeting(self, runtime):
        assert fallback_response(_conversation(runtime, "Hello there")) == GREETING_RESPONSE

    def test_greeting_needs_word_boundary(self, runtime):
        # "this" contains "hi" but is not a greeting
        assert fallback_response(_conversation(runtime, "is this normal")) == GENERIC_RESPONSE

    @pytest.mark.parametrize(
        "text,keyword",
        [
            ("I have a migraine", "Headaches"),
            ("best workout plan?", "physical activity"),
            ("what about my diet", "balanced diet"),
            ("are apples good", "fiber"),
        ],
    )
    def test_topics(self, runtime, text, keyword):
        reply = fallback_response(_conversation(runtime, text))
        assert keyword in reply
        assert reply.endswith(OFFLINE_NOTE)

    def test_generic(self, runtime):
        reply = fallback_response(_conversation(runtime, "what is a kidney"))
        assert reply == GENERIC_RESPONSE
        assert "offline mode" in reply

    def test_uses_latest_user_message(self, runtime):
        messages = _conversation(runtime, "headache", "hi")
        assert last_user_text(messages) == "hi"
        assert fallback_response(messages) == GREETING_RESPONSE


class TestStreamWords:
    def test_cumulative_one_word_per_step(self):
        sleeps = []

        async def _sleep(seconds):
            sleeps.append(seconds)

        async def _collect():
            return [t async for t in stream_words("rest and hydrate", _sleep, 0.5)]

        assert _run(_collect()) == ["rest", "rest and", "rest and hydrate"]
        assert sleeps == [0.5, 0.5, 0.5]

    def test_preserves_newlines(self):
        async def _sleep(seconds):
            pass

        async def _collect():
            return [t async for t in stream_words("a\n\nb c", _sleep)]

        assert _run(_collect())[-1] == "a\n\nb c"
