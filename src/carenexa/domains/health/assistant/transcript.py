"""Chat transcript records and their persisted form."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from carenexa.core.llm.provider import ChatMessage
from carenexa.core.runtime.capabilities import parse_iso, to_iso

logger = logging.getLogger(__name__)

TRANSCRIPT_KEY = "drEchoMessages"

SYSTEM_MESSAGE_ID = "system-1"
WELCOME_MESSAGE_ID = "welcome"


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    id: str
    role: str  # MessageRole value
    content: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": str(self.role),
            "content": self.content,
            "timestamp": to_iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        role = str(data["role"])
        if role not in {r.value for r in MessageRole}:
            raise ValueError(f"Unknown message role: {role!r}")
        return cls(
            id=str(data["id"]),
            role=role,
            content=str(data["content"]),
            timestamp=parse_iso(str(data["timestamp"])),
        )

    def as_chat_message(self) -> ChatMessage:
        return ChatMessage(role=str(self.role), content=self.content)


def system_message(prompt: str, now: datetime) -> Message:
    return Message(id=SYSTEM_MESSAGE_ID, role=MessageRole.SYSTEM, content=prompt, timestamp=now)


def seed_messages(prompt: str, welcome: str, now: datetime) -> list[Message]:
    """The two messages every fresh transcript starts with."""
    return [
        system_message(prompt, now),
        Message(id=WELCOME_MESSAGE_ID, role=MessageRole.ASSISTANT, content=welcome, timestamp=now),
    ]


def serialize_transcript(messages: list[Message]) -> str:
    return json.dumps([m.to_dict() for m in messages], separators=(",", ":"))


def restore_transcript(raw: str, prompt: str, now: datetime) -> list[Message] | None:
    """Parse a persisted transcript.

    Malformed entries are dropped. If the first surviving entry is not a
    system message, the system prompt is put back at position 0. Returns
    None when ``raw`` is not a JSON list at all.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        logger.warning("Discarding unreadable chat transcript: %s", exc)
        return None
    if not isinstance(data, list):
        logger.warning("Discarding chat transcript: expected a list, got %s", type(data).__name__)
        return None

    messages: list[Message] = []
    for entry in data:
        try:
            messages.append(Message.from_dict(entry))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Dropping malformed transcript entry: %s", exc)

    if not messages or messages[0].role != MessageRole.SYSTEM:
        logger.info("Restored transcript had no leading system prompt; reinserting it")
        messages.insert(0, system_message(prompt, now))
    return messages
