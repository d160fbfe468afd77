"""Health state store: the single source of truth for user health data.

One ``HealthStore`` instance holds vitals, the health vector, quest progress,
community pins, consultation receipts, the user profile and the transient SOS
countdown. It is built by the composition root and passed to whoever needs
it; there is no module-level singleton.

Lifecycle: ``init()`` loads the persisted blob once, and every mutation ends
with ``flush()``, which writes the allow-listed fields back under
``STORE_KEY``. The store is a best-effort, single-user cache: storage
failures are logged, never raised, and concurrent writers to the same slot
are last-writer-wins.

Quest ids and task names come from the fixed internal catalog, so lookups
that miss are silent no-ops. Callers that expose these ids to untrusted
input must validate them first (see ``get_quest``).
"""

from __future__ import annotations

import json
import logging
import math
import random
import string
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from carenexa.core.audit.digest import hash_payload
from carenexa.core.llm.system_prompt import OCR_DISCLAIMER
from carenexa.core.runtime.capabilities import (
    Runtime,
    SystemRuntime,
    epoch_millis,
    parse_iso,
    to_iso,
)
from carenexa.core.storage.kv import KeyValueStorage, StorageUnavailableError
from carenexa.domains.health.store.catalog import (
    AI_EXPLORER_QUEST,
    COMMUNITY_GUARDIAN_QUEST,
    default_health_vector,
    default_quests,
)
from carenexa.domains.health.store.models import (
    CommunityPin,
    ConsultationReceipt,
    GeoPoint,
    HealthQuest,
    HealthVector,
    SOSState,
    UserProfile,
    VitalEntry,
    VitalSource,
    VitalType,
)
from carenexa.domains.health.store.scoring import (
    compute_health_score,
    level_for_points,
    level_progress,
    quest_progress,
)

logger = logging.getLogger(__name__)

STORE_KEY = "carenexa-health-store"

MAX_VITALS = 1000
MAX_RECEIPTS = 100
SOS_COUNTDOWN_SECONDS = 10

HAZARD_REPORT_POINTS = 100
LAB_REPORT_POINTS = 150

# Only these fields survive a reload. SOS state is never persisted.
PERSISTED_FIELDS = (
    "vitals",
    "healthVector",
    "quests",
    "vitaPoints",
    "level",
    "streakDays",
    "communityPins",
    "consultationReceipts",
    "userProfile",
)

# Lab result name fragment -> vital type, checked in order.
_LAB_VITAL_MAP = (
    ("heart rate", VitalType.HEART_RATE),
    ("spo2", VitalType.SPO2),
    ("oxygen", VitalType.SPO2),
)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _random_suffix(length: int = 6) -> str:
    return "".join(random.choices(_ID_ALPHABET, k=length))


class HealthStore:
    """Persisted key-value aggregate of one user's health and game state.

    Usage::

        store = HealthStore(MemoryStorage())
        store.init()
        store.add_vital(type="heart_rate", value=72, unit="bpm",
                        timestamp="2026-01-01T08:00:00Z")
        store.compute_health_score()
    """

    def __init__(
        self,
        storage: KeyValueStorage | None,
        runtime: Runtime | None = None,
    ) -> None:
        self._storage = storage
        self._runtime = runtime or SystemRuntime()
        self._initialized = False
        self._reset_to_defaults()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _reset_to_defaults(self) -> None:
        self._vitals: list[VitalEntry] = []
        self._health_vector: HealthVector = default_health_vector()
        self._quests: list[HealthQuest] = default_quests(self._runtime.now())
        self._vita_points = 0
        self._level = 1
        self._streak_days = 0
        self._community_pins: list[CommunityPin] = []
        self._receipts: list[ConsultationReceipt] = []
        self._user_profile = UserProfile()
        self._sos = SOSState(countdown=SOS_COUNTDOWN_SECONDS)

    def init(self) -> HealthStore:
        """Load the persisted state, merging it over the defaults.

        Idempotent. A missing blob leaves the defaults in place; a corrupt
        blob is discarded with a warning.
        """
        if self._initialized:
            return self
        self._initialized = True

        raw = self._read_blob()
        if raw is None:
            logger.info("No persisted health store found; starting from defaults")
            return self

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            self._load(data)
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.warning("Discarding corrupt persisted health store: %s", exc)
            self._reset_to_defaults()
        return self

    def _read_blob(self) -> str | None:
        if self._storage is None:
            return None
        try:
            return self._storage.read(STORE_KEY)
        except StorageUnavailableError as exc:
            logger.warning("Health store could not be read: %s", exc)
            return None

    def _load(self, data: dict[str, Any]) -> None:
        # Parse everything before assigning so a bad field leaves no partial state.
        vitals = self._vitals
        if "vitals" in data:
            vitals = [VitalEntry.from_dict(v) for v in data["vitals"]][:MAX_VITALS]
        vector = self._health_vector
        if "healthVector" in data:
            vector = HealthVector.from_dict(data["healthVector"])
        quests = self._quests
        if "quests" in data:
            quests = [HealthQuest.from_dict(q) for q in data["quests"]]
        points = int(data.get("vitaPoints", self._vita_points))
        level = int(data.get("level", level_for_points(points)))
        streak = int(data.get("streakDays", self._streak_days))
        pins = self._community_pins
        if "communityPins" in data:
            pins = [CommunityPin.from_dict(p) for p in data["communityPins"]]
        receipts = self._receipts
        if "consultationReceipts" in data:
            receipts = [
                ConsultationReceipt.from_dict(r) for r in data["consultationReceipts"]
            ][:MAX_RECEIPTS]
        profile = self._user_profile
        if "userProfile" in data:
            profile = UserProfile.from_dict(data["userProfile"])

        self._vitals = vitals
        self._health_vector = vector
        self._quests = quests
        self._vita_points = points
        self._level = level
        self._streak_days = streak
        self._community_pins = pins
        self._receipts = receipts
        self._user_profile = profile
        logger.info(
            "Health store restored: %d vitals, %d pins, %d receipts, %d VP",
            len(vitals),
            len(pins),
            len(receipts),
            points,
        )

    def snapshot(self) -> dict[str, Any]:
        """The allow-listed, JSON-ready state that ``flush()`` persists."""
        return {
            "vitals": [v.to_dict() for v in self._vitals],
            "healthVector": self._health_vector.to_dict(),
            "quests": [q.to_dict() for q in self._quests],
            "vitaPoints": self._vita_points,
            "level": self._level,
            "streakDays": self._streak_days,
            "communityPins": [p.to_dict() for p in self._community_pins],
            "consultationReceipts": [r.to_dict() for r in self._receipts],
            "userProfile": self._user_profile.to_dict(),
        }

    def flush(self) -> None:
        """Write the persisted subset. Failures are logged, not raised."""
        if self._storage is None:
            return
        try:
            self._storage.write(STORE_KEY, json.dumps(self.snapshot(), separators=(",", ":")))
        except StorageUnavailableError as exc:
            logger.warning("Health store not persisted: %s", exc)

    def _now_iso(self) -> str:
        return to_iso(self._runtime.now())

    def _millis(self) -> int:
        return epoch_millis(self._runtime.now())

    # ------------------------------------------------------------------
    # Vitals
    # ------------------------------------------------------------------

    @property
    def vitals(self) -> list[VitalEntry]:
        """All vitals, most recent first."""
        return list(self._vitals)

    def add_vital(
        self,
        *,
        type: str,
        value: float,
        unit: str,
        timestamp: str,
        source: str = VitalSource.MANUAL,
    ) -> VitalEntry:
        """Prepend a reading and keep only the newest ``MAX_VITALS``.

        Values are not range-checked here.
        """
        entry = VitalEntry(
            id=f"v_{self._millis()}_{_random_suffix()}",
            type=str(type),
            value=value,
            unit=unit,
            timestamp=timestamp,
            source=str(source),
        )
        self._vitals = [entry, *self._vitals][:MAX_VITALS]
        self.flush()
        return entry

    def get_vitals_by_type(self, vital_type: str) -> list[VitalEntry]:
        """Vitals of one type, in store order (most recent first)."""
        return [v for v in self._vitals if v.type == vital_type]

    def get_recent_vitals(self, days: float) -> list[VitalEntry]:
        """Vitals strictly newer than ``now - days``.

        A reading exactly at the cutoff is excluded. Readings with an
        unparseable timestamp are skipped. A window reaching past the
        earliest representable date covers every reading; a NaN window
        covers none.
        """
        if math.isnan(days):
            return []
        try:
            cutoff = self._runtime.now() - timedelta(days=days)
        except OverflowError:
            if days < 0:
                return []
            cutoff = datetime.min.replace(tzinfo=timezone.utc)
        recent: list[VitalEntry] = []
        for vital in self._vitals:
            try:
                taken = parse_iso(vital.timestamp)
            except ValueError:
                logger.debug("Skipping vital %s with bad timestamp %r", vital.id, vital.timestamp)
                continue
            if taken > cutoff:
                recent.append(vital)
        return recent

    # ------------------------------------------------------------------
    # Health vector
    # ------------------------------------------------------------------

    @property
    def health_vector(self) -> HealthVector:
        return replace(self._health_vector)

    def update_health_vector(self, partial: dict[str, float]) -> None:
        """Replace only the supplied dimensions."""
        self._health_vector = self._health_vector.merged(partial)
        self.flush()

    def compute_health_score(self) -> int:
        return compute_health_score(self._health_vector)

    # ------------------------------------------------------------------
    # Quests and Vita Points
    # ------------------------------------------------------------------

    @property
    def quests(self) -> list[HealthQuest]:
        return [HealthQuest.from_dict(q.to_dict()) for q in self._quests]

    def get_quest(self, quest_id: str) -> HealthQuest | None:
        for quest in self._quests:
            if quest.id == quest_id:
                return HealthQuest.from_dict(quest.to_dict())
        return None

    @property
    def vita_points(self) -> int:
        return self._vita_points

    @property
    def level(self) -> int:
        return self._level

    @property
    def streak_days(self) -> int:
        return self._streak_days

    def level_progress(self) -> tuple[int, float]:
        """(points into the current level, percent toward the next level)."""
        return level_progress(self._vita_points)

    def complete_quest_task(self, quest_id: str, task_name: str) -> None:
        """Mark a task complete and recompute the quest's progress.

        Completion is one-way. Unknown quest ids and task names are no-ops.
        """
        for quest in self._quests:
            if quest.id != quest_id:
                continue
            quest.tasks = [
                replace(t, complete=True) if t.name == task_name else t for t in quest.tasks
            ]
            quest.progress = quest_progress(quest.tasks)
        self.flush()

    def add_vita_points(self, points: int) -> None:
        """Add points and recompute the level. Negative amounts are ignored."""
        if points < 0:
            logger.warning("Ignoring negative Vita Points award: %d", points)
            return
        self._vita_points += points
        self._level = level_for_points(self._vita_points)
        self.flush()

    def reward_quest_task(self, quest_id: str, task_name: str) -> int:
        """Complete a task and pay out its share of the quest reward.

        The task that finishes a quest pays the full reward; any other task
        pays ``reward // task_count``. Returns the points awarded, which is
        0 for unknown ids or a task that was already complete.
        """
        quest = self.get_quest(quest_id)
        if quest is None:
            return 0
        task = quest.find_task(task_name)
        if task is None or task.complete:
            return 0

        finishes_quest = all(t.complete or t.name == task_name for t in quest.tasks)
        award = quest.reward if finishes_quest else quest.reward // len(quest.tasks)

        self.complete_quest_task(quest_id, task_name)
        self.add_vita_points(award)
        if finishes_quest:
            logger.info("Quest %s completed: +%d VP", quest_id, award)
        return award

    # ------------------------------------------------------------------
    # Community pins
    # ------------------------------------------------------------------

    @property
    def community_pins(self) -> list[CommunityPin]:
        return list(self._community_pins)

    def add_community_pin(
        self,
        *,
        lat: float,
        lng: float,
        type: str,
        description: str,
        category: str = "general",
        timestamp: str | None = None,
    ) -> CommunityPin:
        pin = CommunityPin(
            id=f"pin_{self._millis()}_{_random_suffix()}",
            lat=lat,
            lng=lng,
            type=str(type),
            category=category,
            description=description,
            timestamp=timestamp or self._now_iso(),
        )
        self._community_pins = [pin, *self._community_pins]
        self.flush()
        return pin

    def remove_community_pin(self, pin_id: str) -> None:
        self._community_pins = [p for p in self._community_pins if p.id != pin_id]
        self.flush()

    def report_hazard(self, **pin_fields: Any) -> CommunityPin:
        """Add a pin and credit the reporter, as the community map does."""
        pin = self.add_community_pin(**pin_fields)
        self.add_vita_points(HAZARD_REPORT_POINTS)
        self.complete_quest_task(COMMUNITY_GUARDIAN_QUEST, "Report first hazard")
        return pin

    # ------------------------------------------------------------------
    # Consultation receipts
    # ------------------------------------------------------------------

    @property
    def consultation_receipts(self) -> list[ConsultationReceipt]:
        """Receipts, most recent first."""
        return list(self._receipts)

    def add_consultation_receipt(
        self,
        *,
        agent_type: str,
        prompt_summary: str,
        response_hash: str,
        model_version: str,
        disclaimer: str,
        timestamp: str | None = None,
    ) -> ConsultationReceipt:
        """Prepend a receipt, keeping the newest ``MAX_RECEIPTS``."""
        receipt = ConsultationReceipt(
            id=f"cr_{self._millis()}",
            timestamp=timestamp or self._now_iso(),
            agent_type=agent_type,
            prompt_summary=prompt_summary,
            response_hash=response_hash,
            model_version=model_version,
            disclaimer=disclaimer,
        )
        self._receipts = [receipt, *self._receipts][:MAX_RECEIPTS]
        self.flush()
        return receipt

    def ingest_lab_results(
        self,
        results: Iterable[dict[str, Any]],
        *,
        lab_name: str = "",
        audit_hash: str = "",
        model_version: str,
    ) -> list[VitalEntry]:
        """Store vitals extracted from a lab report and record the upload.

        ``model_version`` names the model that did the extraction and goes
        on the receipt.

        Each result is a dict with ``testName``, ``value`` and ``unit``.
        Heart-rate and oxygen-saturation results with numeric values become
        ``ocr`` vitals; everything else is only covered by the receipt.
        """
        results = list(results)
        now = self._now_iso()
        added: list[VitalEntry] = []
        for result in results:
            name = str(result.get("testName", "")).lower()
            value = result.get("value")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            vital_type = next((t for key, t in _LAB_VITAL_MAP if key in name), None)
            if vital_type is None:
                continue
            added.append(
                self.add_vital(
                    type=vital_type,
                    value=value,
                    unit=str(result.get("unit", "")),
                    timestamp=now,
                    source=VitalSource.OCR,
                )
            )

        self.add_consultation_receipt(
            agent_type="ocr",
            prompt_summary=f"Medical report OCR: {lab_name or 'Unknown Lab'}",
            response_hash=audit_hash or hash_payload(results),
            model_version=model_version,
            disclaimer=OCR_DISCLAIMER,
            timestamp=now,
        )
        self.add_vita_points(LAB_REPORT_POINTS)
        self.complete_quest_task(AI_EXPLORER_QUEST, "Upload a lab report")
        logger.info("Lab report ingested: %d of %d results stored as vitals", len(added), len(results))
        return added

    # ------------------------------------------------------------------
    # User profile
    # ------------------------------------------------------------------

    @property
    def user_profile(self) -> UserProfile:
        return replace(
            self._user_profile,
            conditions=list(self._user_profile.conditions),
            medications=list(self._user_profile.medications),
        )

    def update_user_profile(self, partial: dict[str, Any]) -> None:
        self._user_profile = self._user_profile.merged(partial)
        self.flush()

    # ------------------------------------------------------------------
    # SOS countdown (not persisted)
    # ------------------------------------------------------------------

    @property
    def sos_state(self) -> SOSState:
        return self._sos

    def trigger_sos(self, location: GeoPoint | None = None) -> None:
        self._sos = SOSState(active=True, countdown=SOS_COUNTDOWN_SECONDS, location=location)

    def cancel_sos(self) -> None:
        self._sos = SOSState(active=False, countdown=SOS_COUNTDOWN_SECONDS)

    def decrement_sos_countdown(self) -> None:
        """One timer tick. The countdown never goes below zero."""
        self._sos = replace(self._sos, countdown=max(0, self._sos.countdown - 1))
