"""Runtime capabilities injected into the store and the assistant pipeline.

Wall-clock time, waiting and id generation are the only environment features
the core touches. Passing them in keeps the core free of inline feature
detection and lets tests replace them with a deterministic stub.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Runtime(Protocol):
    """Environment capabilities used by the core."""

    def now(self) -> datetime:
        """Current time, timezone-aware (UTC)."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the current task without blocking the event loop."""
        ...

    def new_id(self) -> str:
        """A fresh opaque identifier."""
        ...


class SystemRuntime:
    """The real clock, ``asyncio.sleep`` and UUID4 ids."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def new_id(self) -> str:
        return str(uuid.uuid4())


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the epoch, the unit used in generated ids."""
    return int(moment.timestamp() * 1000)


def to_iso(moment: datetime) -> str:
    """ISO 8601 with a ``Z`` suffix for UTC, matching browser ``toISOString``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If ``value`` is not a valid timestamp.
    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
