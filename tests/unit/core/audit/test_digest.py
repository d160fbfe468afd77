"""Tests for response fingerprinting helpers."""

from __future__ import annotations

import hashlib

from carenexa.core.audit.digest import (
    PROMPT_SUMMARY_LIMIT,
    hash_payload,
    matches,
    sha256_hex,
    summarize_prompt,
    verify_receipt,
)


class TestSha256Hex:
    def test_known_vector(self):
        assert sha256_hex("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_utf8(self):
        assert sha256_hex("café") == hashlib.sha256("café".encode("utf-8")).hexdigest()


class TestHashPayload:
    def test_key_order_does_not_matter(self):
        assert hash_payload({"a": 1, "b": 2}) == hash_payload({"b": 2, "a": 1})

    def test_unserializable_is_empty(self):
        assert hash_payload({"x": object()}) == ""


class TestSummarizePrompt:
    def test_short_prompt_unchanged(self):
        assert summarize_prompt("How much water?") == "How much water?"

    def test_exactly_limit_unchanged(self):
        text = "x" * PROMPT_SUMMARY_LIMIT
        assert summarize_prompt(text) == text

    def test_long_prompt_truncated_with_ellipsis(self):
        summary = summarize_prompt("y" * 200)
        assert summary == "y" * 80 + "..."


class TestMatches:
    def test_match(self):
        assert matches("hello", sha256_hex("hello"))

    def test_uppercase_hash_matches(self):
        assert matches("hello", sha256_hex("hello").upper())

    def test_mismatch(self):
        assert not matches("hello!", sha256_hex("hello"))

    def test_empty_hash_never_matches(self):
        assert not matches("", "")


class TestVerifyReceipt:
    def test_uses_receipt_hash(self):
        class _Receipt:
            response_hash = sha256_hex("Rest and hydrate.")

        assert verify_receipt(_Receipt(), "Rest and hydrate.")
        assert not verify_receipt(_Receipt(), "Rest and hydrate")
