"""Response fingerprinting for consultation receipts.

A receipt stores the SHA-256 of an AI response instead of the response
itself, so a user can later check that a displayed answer matches what was
recorded without the store keeping a second copy of the text.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Digester = Callable[[str], str]

PROMPT_SUMMARY_LIMIT = 80


def sha256_hex(text: str) -> str:
    """Hex-encoded SHA-256 of UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_payload(data: Any) -> str:
    """SHA-256 of canonical JSON, or empty string if ``data`` is not serializable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        return ""
    return sha256_hex(canonical)


def summarize_prompt(prompt: str, limit: int = PROMPT_SUMMARY_LIMIT) -> str:
    """Truncate ``prompt`` to ``limit`` characters, marking the cut with ``...``."""
    if len(prompt) > limit:
        return prompt[:limit] + "..."
    return prompt


def matches(text: str, response_hash: str, digester: Digester = sha256_hex) -> bool:
    """Whether ``text`` hashes to ``response_hash``."""
    if not response_hash:
        return False
    return digester(text) == response_hash.lower()


def verify_receipt(receipt: Any, text: str, digester: Digester = sha256_hex) -> bool:
    """Whether ``text`` is the response recorded by ``receipt``.

    ``receipt`` is anything with a ``response_hash`` attribute, normally a
    ``ConsultationReceipt``.
    """
    return matches(text, receipt.response_hash, digester)
