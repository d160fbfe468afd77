"""Offline responder used when the remote model is unavailable.

Deterministic keyword matching over the latest user message, plus a
word-by-word replay that imitates a streaming reply.
"""

from __future__ import annotations

import re
from typing import AsyncIterator, Awaitable, Callable, Iterable

from carenexa.domains.health.assistant.transcript import Message, MessageRole

OFFLINE_NOTE = "Note: I'm currently operating in offline mode with limited capabilities."

MISSING_CREDENTIAL_NOTICE = (
    "Note: I'm currently running in limited mode because the AI service key is not "
    "configured. Please set up the API key for full functionality."
)

SERVICE_FAILURE_NOTICE = (
    "Note: I'm currently using a limited response system because the AI service "
    "connection experienced an issue."
)

_GREETING = re.compile(r"\b(hello|hi|hey)\b")

# (keywords, response body); first match wins.
_TOPIC_RESPONSES: list[tuple[tuple[str, ...], str]] = [
    (
        ("headache", "migraine"),
        "Headaches can be caused by various factors including stress, dehydration, "
        "lack of sleep, or eye strain. For occasional headaches, rest, staying "
        "hydrated, and over-the-counter pain relievers may help. If your headaches "
        "are severe or persistent, please consult a healthcare professional.",
    ),
    (
        ("fitness", "exercise", "workout"),
        "Regular physical activity is important for maintaining good health. Adults "
        "should aim for at least 150 minutes of moderate-intensity activity or 75 "
        "minutes of vigorous activity each week, along with muscle-strengthening "
        "activities twice weekly. Always start gradually and listen to your body.",
    ),
    (
        ("diet", "nutrition"),
        "A balanced diet typically includes plenty of fruits, vegetables, whole "
        "grains, lean proteins, and healthy fats. It's best to limit processed foods, "
        "added sugars, and excessive sodium. Staying hydrated is also important for "
        "overall health.",
    ),
    (
        ("apple", "fruit"),
        "Apples and other fruits are high in fiber, vitamin C, and various "
        "antioxidants. They're associated with improved heart health and a lower "
        "risk of several chronic conditions, which is why 'an apple a day' remains "
        "good advice.",
    ),
]

GREETING_RESPONSE = (
    "Hello! I'm Dr. Echo, your CareNexa AI health assistant. I'm currently operating "
    "in offline mode with limited capabilities, but I'll do my best to help you."
)

GENERIC_RESPONSE = (
    "I'm Dr. Echo, your health assistant. I'm currently operating in offline mode "
    "with limited capabilities. In this mode, I can only provide very general health "
    "information. For more specific guidance, please try again when my connection "
    "to the AI service is restored.\n\nFor medical concerns, please consult with a "
    "healthcare professional."
)


def last_user_text(messages: Iterable[Message]) -> str:
    text = ""
    for message in messages:
        if message.role == MessageRole.USER:
            text = message.content
    return text


def fallback_response(messages: Iterable[Message]) -> str:
    """Pick a canned answer for the latest user message."""
    text = last_user_text(messages).lower()

    if _GREETING.search(text):
        return GREETING_RESPONSE

    for keywords, body in _TOPIC_RESPONSES:
        if any(keyword in text for keyword in keywords):
            return f"{body}\n\n{OFFLINE_NOTE}"

    return GENERIC_RESPONSE


async def stream_words(
    text: str,
    sleep: Callable[[float], Awaitable[None]],
    delay: float = 0.02,
) -> AsyncIterator[str]:
    """Replay ``text`` one word at a time as cumulative text.

    Yields exactly ``len(text.split(" "))`` values; the last one is ``text``.
    """
    current = ""
    for index, word in enumerate(text.split(" ")):
        await sleep(delay)
        current = word if index == 0 else f"{current} {word}"
        yield current
