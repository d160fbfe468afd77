"""Tests for runtime capabilities and timestamp helpers."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from carenexa.core.runtime.capabilities import (
    Runtime,
    SystemRuntime,
    epoch_millis,
    parse_iso,
    to_iso,
)


class TestSystemRuntime:
    def test_now_is_utc_aware(self):
        now = SystemRuntime().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_ids_are_unique(self):
        runtime = SystemRuntime()
        assert runtime.new_id() != runtime.new_id()

    def test_sleep_zero(self):
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(SystemRuntime().sleep(0))
        finally:
            loop.close()

    def test_satisfies_protocol(self):
        assert isinstance(SystemRuntime(), Runtime)


class TestTimestamps:
    def test_to_iso_matches_browser_format(self):
        moment = datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
        assert to_iso(moment) == "2026-01-02T03:04:05.678Z"

    def test_to_iso_naive_is_utc(self):
        assert to_iso(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000Z"

    def test_parse_iso_z_suffix(self):
        parsed = parse_iso("2026-01-02T03:04:05.678Z")
        assert parsed == datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)

    def test_parse_iso_naive_is_utc(self):
        assert parse_iso("2026-01-01T00:00:00").tzinfo is not None

    def test_parse_iso_invalid(self):
        with pytest.raises(ValueError):
            parse_iso("yesterday")

    def test_epoch_millis(self):
        assert epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
