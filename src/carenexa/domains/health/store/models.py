"""Data models for the health state store.

Records serialize to the camelCase JSON document the web client persists
(``agentType``, ``promptSummary``, ``bloodType``...), so a blob written by
either side can be read by the other.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import StrEnum
from typing import Any


class VitalType(StrEnum):
    HEART_RATE = "heart_rate"
    SPO2 = "spo2"
    SLEEP_SCORE = "sleep_score"
    STEPS = "steps"
    STRESS = "stress"


class VitalSource(StrEnum):
    MANUAL = "manual"
    PPG = "ppg"
    OCR = "ocr"
    WEARABLE = "wearable"


class QuestCategory(StrEnum):
    VITALS = "vitals"
    ACTIVITY = "activity"
    NUTRITION = "nutrition"
    MENTAL = "mental"
    COMMUNITY = "community"


class PinType(StrEnum):
    SAFE = "safe"
    CAUTION = "caution"
    DANGER = "danger"


# ---------------------------------------------------------------------------
# Vitals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VitalEntry:
    """A single timestamped physiological reading. Never edited once stored."""

    id: str
    type: str  # VitalType value
    value: float
    unit: str
    timestamp: str  # ISO 8601
    source: str = VitalSource.MANUAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": str(self.type),
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp,
            "source": str(self.source),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VitalEntry:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            value=data["value"],
            unit=str(data.get("unit", "")),
            timestamp=str(data["timestamp"]),
            source=str(data.get("source", VitalSource.MANUAL)),
        )


# ---------------------------------------------------------------------------
# Health vector
# ---------------------------------------------------------------------------

HEALTH_DIMENSIONS = (
    "cardiovascular",
    "metabolic",
    "respiratory",
    "mental_health",
    "sleep",
    "activity",
    "nutrition",
    "stress",
)


@dataclass
class HealthVector:
    """Eight wellness dimensions, each expected (not enforced) in [0, 1]."""

    cardiovascular: float = 0.7
    metabolic: float = 0.7
    respiratory: float = 0.8
    mental_health: float = 0.7
    sleep: float = 0.65
    activity: float = 0.6
    nutrition: float = 0.65
    stress: float = 0.7

    def values(self) -> list[float]:
        """Dimension values in HEALTH_DIMENSIONS order."""
        return [getattr(self, name) for name in HEALTH_DIMENSIONS]

    def merged(self, partial: dict[str, float]) -> HealthVector:
        """Return a copy with the supplied dimensions replaced.

        Keys that are not health dimensions are ignored.
        """
        current = self.to_dict()
        current.update({k: v for k, v in partial.items() if k in HEALTH_DIMENSIONS})
        return HealthVector(**current)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthVector:
        return cls().merged({k: float(v) for k, v in data.items() if k in HEALTH_DIMENSIONS})


# ---------------------------------------------------------------------------
# Quests
# ---------------------------------------------------------------------------

@dataclass
class QuestTask:
    name: str
    complete: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "complete": self.complete}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuestTask:
        return cls(name=str(data["name"]), complete=bool(data.get("complete", False)))


@dataclass
class HealthQuest:
    """A gamified group of tasks. ``progress`` is derived from the tasks."""

    id: str
    title: str
    description: str
    reward: int  # Vita Points
    deadline: str  # ISO 8601
    category: str  # QuestCategory value
    tasks: list[QuestTask] = field(default_factory=list)
    progress: int = 0  # 0-100

    @property
    def is_complete(self) -> bool:
        return bool(self.tasks) and all(t.complete for t in self.tasks)

    def find_task(self, name: str) -> QuestTask | None:
        for task in self.tasks:
            if task.name == name:
                return task
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "progress": self.progress,
            "reward": self.reward,
            "deadline": self.deadline,
            "tasks": [t.to_dict() for t in self.tasks],
            "category": str(self.category),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthQuest:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            reward=int(data.get("reward", 0)),
            deadline=str(data.get("deadline", "")),
            category=str(data.get("category", QuestCategory.VITALS)),
            tasks=[QuestTask.from_dict(t) for t in data.get("tasks", [])],
            progress=int(data.get("progress", 0)),
        )


# ---------------------------------------------------------------------------
# Community map
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class CommunityPin:
    """A geotagged hazard or safe-resource report."""

    id: str
    lat: float
    lng: float
    type: str  # PinType value
    category: str
    description: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "lat": self.lat,
            "lng": self.lng,
            "type": str(self.type),
            "category": self.category,
            "description": self.description,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommunityPin:
        return cls(
            id=str(data["id"]),
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            type=str(data["type"]),
            category=str(data.get("category", "general")),
            description=str(data.get("description", "")),
            timestamp=str(data.get("timestamp", "")),
        )


# ---------------------------------------------------------------------------
# Consultation receipts (audit trail)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConsultationReceipt:
    """Audit record of one AI exchange: metadata plus a hash of the response."""

    id: str
    timestamp: str
    agent_type: str
    prompt_summary: str
    response_hash: str
    model_version: str
    disclaimer: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "agentType": self.agent_type,
            "promptSummary": self.prompt_summary,
            "responseHash": self.response_hash,
            "modelVersion": self.model_version,
            "disclaimer": self.disclaimer,
        }

    def export(self) -> dict[str, Any]:
        """The downloadable receipt document."""
        return {
            "receiptId": self.id,
            "timestamp": self.timestamp,
            "agentType": self.agent_type,
            "promptSummary": self.prompt_summary,
            "responseHash": self.response_hash,
            "modelVersion": self.model_version,
            "disclaimer": self.disclaimer,
            "generatedBy": "CareNexa",
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConsultationReceipt:
        return cls(
            id=str(data["id"]),
            timestamp=str(data.get("timestamp", "")),
            agent_type=str(data.get("agentType", "general")),
            prompt_summary=str(data.get("promptSummary", "")),
            response_hash=str(data.get("responseHash", "")),
            model_version=str(data.get("modelVersion", "")),
            disclaimer=str(data.get("disclaimer", "")),
        )


# ---------------------------------------------------------------------------
# User profile and SOS
# ---------------------------------------------------------------------------

# Python attribute name -> persisted key
_PROFILE_KEYS = {
    "age": "age",
    "gender": "gender",
    "weight": "weight",
    "height": "height",
    "blood_type": "bloodType",
    "emergency_contact": "emergencyContact",
    "conditions": "conditions",
    "medications": "medications",
}


@dataclass
class UserProfile:
    age: int | None = None
    gender: str | None = None
    weight: float | None = None
    height: float | None = None
    blood_type: str | None = None
    emergency_contact: str | None = None
    conditions: list[str] = field(default_factory=list)
    medications: list[str] = field(default_factory=list)

    def merged(self, partial: dict[str, Any]) -> UserProfile:
        """Return a copy with the supplied fields replaced.

        Accepts either attribute names (``blood_type``) or persisted keys
        (``bloodType``). Unknown keys are ignored. A null list field
        becomes an empty list.
        """
        by_key = {v: k for k, v in _PROFILE_KEYS.items()}
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, value in partial.items():
            name = key if key in _PROFILE_KEYS else by_key.get(key)
            if name is not None:
                current[name] = list(value or []) if name in ("conditions", "medications") else value
        return UserProfile(**current)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name, key in _PROFILE_KEYS.items():
            value = getattr(self, name)
            if value is not None:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserProfile:
        return cls().merged(data)


@dataclass(frozen=True)
class SOSState:
    active: bool = False
    countdown: int = 10
    location: GeoPoint | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"active": self.active, "countdown": self.countdown}
        if self.location is not None:
            out["location"] = self.location.to_dict()
        return out
