"""Tests for HealthStore: mutations, caps, derived values and persistence."""

from __future__ import annotations

import json
import math
from datetime import timedelta

import pytest

from carenexa.core.runtime.capabilities import to_iso
from carenexa.core.storage.kv import MemoryStorage, StorageUnavailableError
from carenexa.domains.health.store.health_store import (
    MAX_RECEIPTS,
    MAX_VITALS,
    PERSISTED_FIELDS,
    STORE_KEY,
    HealthStore,
)
from carenexa.domains.health.store.models import GeoPoint, HealthVector


def _add_hr(store: HealthStore, value: float, timestamp: str = "2026-03-01T08:00:00.000Z"):
    return store.add_vital(type="heart_rate", value=value, unit="bpm", timestamp=timestamp)


def _add_receipt(store: HealthStore, n: int):
    return store.add_consultation_receipt(
        agent_type="general",
        prompt_summary=f"question {n}",
        response_hash=f"{n:064x}",
        model_version="gemini-2.0-flash",
        disclaimer="Not medical advice.",
    )


class _BrokenStorage:
    """Storage whose every call fails."""

    def read(self, key):
        raise StorageUnavailableError("disk gone")

    def write(self, key, value):
        raise StorageUnavailableError("disk gone")

    def remove(self, key):
        raise StorageUnavailableError("disk gone")


class TestDefaults:
    def test_fresh_store(self, health_store):
        assert health_store.vitals == []
        assert health_store.vita_points == 0
        assert health_store.level == 1
        assert health_store.streak_days == 0
        assert health_store.health_vector == HealthVector()
        assert [q.id for q in health_store.quests] == ["q1", "q2", "q3", "q4"]
        assert health_store.community_pins == []
        assert health_store.consultation_receipts == []
        assert not health_store.sos_state.active
        assert health_store.sos_state.countdown == 10

    def test_snapshot_holds_only_persisted_fields(self, health_store):
        assert tuple(health_store.snapshot()) == PERSISTED_FIELDS


class TestVitals:
    def test_add_vital_prepends(self, health_store):
        first = _add_hr(health_store, 60)
        second = _add_hr(health_store, 65)
        assert [v.id for v in health_store.vitals] == [second.id, first.id]
        assert first.id.startswith("v_")
        assert first.source == "manual"

    def test_values_not_range_checked(self, health_store):
        entry = _add_hr(health_store, -5)
        assert entry.value == -5

    def test_cap_keeps_newest(self, runtime):
        store = HealthStore(None, runtime).init()
        for i in range(MAX_VITALS + 5):
            _add_hr(store, i)
        vitals = store.vitals
        assert len(vitals) == MAX_VITALS
        assert vitals[0].value == MAX_VITALS + 4
        assert vitals[-1].value == 5

    def test_scenario_by_type_most_recent_first(self, health_store, runtime):
        t = runtime.now()
        for offset, value in enumerate([60, 65, 70]):
            _add_hr(health_store, value, to_iso(t + timedelta(hours=offset)))
        health_store.add_vital(type="spo2", value=98, unit="%", timestamp=to_iso(t))
        assert [v.value for v in health_store.get_vitals_by_type("heart_rate")] == [70, 65, 60]

    def test_recent_vitals_cutoff_is_exclusive(self, health_store, runtime):
        cutoff = runtime.now() - timedelta(days=7)
        _add_hr(health_store, 1, to_iso(cutoff))
        _add_hr(health_store, 2, to_iso(cutoff + timedelta(seconds=1)))
        _add_hr(health_store, 3, to_iso(runtime.now()))
        assert [v.value for v in health_store.get_recent_vitals(7)] == [3, 2]

    def test_recent_vitals_skips_bad_timestamps(self, health_store):
        _add_hr(health_store, 1, "not a date")
        assert health_store.get_recent_vitals(7) == []

    @pytest.mark.parametrize("days", [1_000_000, 1e12, math.inf])
    def test_recent_vitals_window_past_year_one_includes_everything(self, health_store, days):
        _add_hr(health_store, 1, "0005-01-01T00:00:00.000Z")
        _add_hr(health_store, 2, "2026-02-28T00:00:00.000Z")
        assert [v.value for v in health_store.get_recent_vitals(days)] == [2, 1]

    @pytest.mark.parametrize("days", [math.nan, -math.inf, -1e12])
    def test_recent_vitals_degenerate_windows_are_empty(self, health_store, days):
        _add_hr(health_store, 1, "2026-02-28T00:00:00.000Z")
        assert health_store.get_recent_vitals(days) == []


class TestHealthVector:
    def test_scenario_partial_update(self, health_store):
        before = health_store.health_vector
        baseline = health_store.compute_health_score()
        health_store.update_health_vector({"sleep": 1.0})
        after = health_store.health_vector
        assert after.sleep == 1.0
        changed = [k for k, v in after.to_dict().items() if before.to_dict()[k] != v]
        assert changed == ["sleep"]
        assert health_store.compute_health_score() > baseline

    def test_returned_vector_is_a_copy(self, health_store):
        vector = health_store.health_vector
        vector.sleep = 0.0
        assert health_store.health_vector.sleep == 0.65


class TestQuests:
    def test_progress_is_monotonic(self, health_store):
        names = [t.name for t in health_store.get_quest("q3").tasks]
        seen = []
        for name in names:
            health_store.complete_quest_task("q3", name)
            seen.append(health_store.get_quest("q3").progress)
        assert seen == [20, 40, 60, 80, 100]
        health_store.complete_quest_task("q3", names[0])
        assert health_store.get_quest("q3").progress == 100
        assert health_store.get_quest("q3").is_complete

    def test_unknown_ids_are_noops(self, health_store):
        before = [q.to_dict() for q in health_store.quests]
        health_store.complete_quest_task("q99", "Log heart rate today")
        health_store.complete_quest_task("q1", "Climb Everest")
        assert [q.to_dict() for q in health_store.quests] == before

    def test_returned_quests_are_copies(self, health_store):
        quest = health_store.get_quest("q1")
        quest.tasks[0].complete = True
        assert not health_store.get_quest("q1").tasks[0].complete

    def test_reward_quest_task_pays_share_then_full_reward(self, health_store):
        names = [t.name for t in health_store.get_quest("q1").tasks]
        awards = [health_store.reward_quest_task("q1", name) for name in names]
        assert awards == [125, 125, 125, 500]
        assert health_store.vita_points == 875
        assert health_store.reward_quest_task("q1", names[0]) == 0
        assert health_store.reward_quest_task("nope", names[0]) == 0
        assert health_store.reward_quest_task("q1", "nope") == 0


class TestVitaPoints:
    def test_scenario_level_up(self, health_store):
        assert (health_store.vita_points, health_store.level) == (0, 1)
        health_store.add_vita_points(1000)
        assert health_store.level == 2

    def test_crossing_boundary(self, health_store):
        health_store.add_vita_points(999)
        assert health_store.level == 1
        health_store.add_vita_points(1)
        assert health_store.level == 2
        assert health_store.level_progress() == (0, 0.0)

    def test_negative_points_ignored(self, health_store):
        health_store.add_vita_points(50)
        health_store.add_vita_points(-500)
        assert health_store.vita_points == 50


class TestCommunityPins:
    def test_add_and_remove(self, health_store):
        pin = health_store.add_community_pin(
            lat=6.5, lng=3.4, type="danger", description="Open drain"
        )
        assert pin.id.startswith("pin_")
        assert pin.category == "general"
        assert pin.timestamp == "2026-03-01T12:00:00.000Z"
        assert health_store.community_pins == [pin]
        health_store.remove_community_pin("missing")
        assert health_store.community_pins == [pin]
        health_store.remove_community_pin(pin.id)
        assert health_store.community_pins == []

    def test_report_hazard_rewards_reporter(self, health_store):
        health_store.report_hazard(lat=1, lng=2, type="caution", description="Smoke")
        assert health_store.vita_points == 100
        quest = health_store.get_quest("q2")
        assert quest.find_task("Report first hazard").complete
        assert quest.progress == 33


class TestReceipts:
    def test_receipt_fields(self, health_store):
        receipt = _add_receipt(health_store, 1)
        assert receipt.id == "cr_1772366400000"
        assert receipt.timestamp == "2026-03-01T12:00:00.000Z"

    def test_cap_keeps_most_recent(self, runtime):
        store = HealthStore(None, runtime).init()
        for n in range(150):
            _add_receipt(store, n)
        receipts = store.consultation_receipts
        assert len(receipts) == MAX_RECEIPTS
        assert receipts[0].prompt_summary == "question 149"
        assert receipts[-1].prompt_summary == "question 50"

    def test_ingest_lab_results(self, health_store):
        added = health_store.ingest_lab_results(
            [
                {"testName": "Heart Rate", "value": 72, "unit": "bpm"},
                {"testName": "Oxygen Saturation", "value": 97, "unit": "%"},
                {"testName": "Fasting Glucose", "value": 90, "unit": "mg/dL"},
                {"testName": "SpO2", "value": "high", "unit": "%"},
            ],
            lab_name="City Lab",
            model_version="gemini-1.5-flash",
        )
        assert [(v.type, v.value, v.source) for v in added] == [
            ("heart_rate", 72, "ocr"),
            ("spo2", 97, "ocr"),
        ]
        receipt = health_store.consultation_receipts[0]
        assert receipt.agent_type == "ocr"
        assert receipt.prompt_summary == "Medical report OCR: City Lab"
        assert receipt.model_version == "gemini-1.5-flash"
        assert len(receipt.response_hash) == 64
        assert health_store.vita_points == 150
        assert health_store.get_quest("q3").find_task("Upload a lab report").complete

    def test_ingest_uses_supplied_hash(self, health_store):
        health_store.ingest_lab_results([], audit_hash="abc123", model_version="lab-extractor-2")
        assert health_store.consultation_receipts[0].response_hash == "abc123"
        assert health_store.consultation_receipts[0].prompt_summary.endswith("Unknown Lab")
        assert health_store.consultation_receipts[0].model_version == "lab-extractor-2"


class TestProfileAndSOS:
    def test_update_profile_merges(self, health_store):
        health_store.update_user_profile({"age": 40})
        health_store.update_user_profile({"bloodType": "A-"})
        profile = health_store.user_profile
        assert (profile.age, profile.blood_type) == (40, "A-")

    def test_null_condition_list_clears_it(self, health_store):
        health_store.update_user_profile({"conditions": ["asthma"], "medications": ["salbutamol"]})
        health_store.update_user_profile({"conditions": None})
        profile = health_store.user_profile
        assert profile.conditions == []
        assert profile.medications == ["salbutamol"]

    def test_sos_countdown(self, health_store):
        health_store.trigger_sos(GeoPoint(6.5, 3.4))
        assert health_store.sos_state.active
        for _ in range(12):
            health_store.decrement_sos_countdown()
        assert health_store.sos_state.countdown == 0
        health_store.cancel_sos()
        assert not health_store.sos_state.active
        assert health_store.sos_state.countdown == 10
        assert health_store.sos_state.location is None


class TestPersistence:
    def test_state_survives_reload(self, memory_storage, runtime, health_store):
        _add_hr(health_store, 72)
        health_store.add_vita_points(1500)
        health_store.complete_quest_task("q1", "Log heart rate today")
        _add_receipt(health_store, 7)
        health_store.update_user_profile({"age": 33})
        health_store.trigger_sos()

        reloaded = HealthStore(memory_storage, runtime).init()
        assert [v.value for v in reloaded.vitals] == [72]
        assert (reloaded.vita_points, reloaded.level) == (1500, 2)
        assert reloaded.get_quest("q1").progress == 25
        assert reloaded.consultation_receipts == health_store.consultation_receipts
        assert reloaded.user_profile.age == 33
        assert not reloaded.sos_state.active

    def test_sos_never_persisted(self, memory_storage, health_store):
        health_store.trigger_sos()
        health_store.flush()
        assert "sos" not in json.loads(memory_storage.read(STORE_KEY))

    @pytest.mark.parametrize(
        "blob",
        ["not json", "[1, 2]", '{"vitals": [{"bad": 1}]}', '{"quests": 5}', '{"healthVector": []}'],
    )
    def test_corrupt_blob_falls_back_to_defaults(self, runtime, blob):
        storage = MemoryStorage({STORE_KEY: blob})
        store = HealthStore(storage, runtime).init()
        assert store.vitals == []
        assert store.vita_points == 0
        assert store.health_vector == HealthVector()

    def test_null_profile_lists_do_not_discard_the_blob(self, runtime):
        blob = {"vitaPoints": 500, "userProfile": {"age": 30, "conditions": None}}
        storage = MemoryStorage({STORE_KEY: json.dumps(blob)})
        store = HealthStore(storage, runtime).init()
        assert store.vita_points == 500
        assert store.user_profile.age == 30
        assert store.user_profile.conditions == []

    def test_partial_blob_merges_over_defaults(self, runtime):
        storage = MemoryStorage({STORE_KEY: json.dumps({"vitaPoints": 2500, "extra": 1})})
        store = HealthStore(storage, runtime).init()
        assert (store.vita_points, store.level) == (2500, 3)
        assert len(store.quests) == 4

    def test_init_is_idempotent(self, memory_storage, runtime):
        store = HealthStore(memory_storage, runtime).init()
        memory_storage.write(STORE_KEY, json.dumps({"vitaPoints": 10}))
        store.init()
        assert store.vita_points == 0

    def test_every_mutation_flushes(self, memory_storage, health_store):
        health_store.add_vita_points(5)
        assert json.loads(memory_storage.read(STORE_KEY))["vitaPoints"] == 5

    def test_broken_storage_is_tolerated(self, runtime):
        store = HealthStore(_BrokenStorage(), runtime).init()
        _add_hr(store, 70)
        assert len(store.vitals) == 1
