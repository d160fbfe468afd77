"""Health state store: persisted vitals, scores, quests, pins and receipts."""

from carenexa.domains.health.store.health_store import (
    MAX_RECEIPTS,
    MAX_VITALS,
    PERSISTED_FIELDS,
    STORE_KEY,
    HealthStore,
)
from carenexa.domains.health.store.models import (
    CommunityPin,
    ConsultationReceipt,
    GeoPoint,
    HealthQuest,
    HealthVector,
    PinType,
    QuestCategory,
    SOSState,
    UserProfile,
    VitalEntry,
    VitalSource,
    VitalType,
)

__all__ = [
    "MAX_RECEIPTS",
    "MAX_VITALS",
    "PERSISTED_FIELDS",
    "STORE_KEY",
    "CommunityPin",
    "ConsultationReceipt",
    "GeoPoint",
    "HealthQuest",
    "HealthStore",
    "HealthVector",
    "PinType",
    "QuestCategory",
    "SOSState",
    "UserProfile",
    "VitalEntry",
    "VitalSource",
    "VitalType",
]
