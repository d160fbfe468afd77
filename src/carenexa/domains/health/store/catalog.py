"""Built-in defaults: the quest catalog and the starting health vector."""

from __future__ import annotations

from datetime import datetime, timedelta

from carenexa.core.runtime.capabilities import to_iso
from carenexa.domains.health.store.models import (
    HealthQuest,
    HealthVector,
    QuestCategory,
    QuestTask,
)

VITAL_TRACKER_QUEST = "q1"
COMMUNITY_GUARDIAN_QUEST = "q2"
AI_EXPLORER_QUEST = "q3"
MOVE_AND_GROOVE_QUEST = "q4"

# (id, title, description, reward, days to deadline, category, task names)
_QUEST_DEFINITIONS: list[tuple[str, str, str, int, int, QuestCategory, list[str]]] = [
    (
        VITAL_TRACKER_QUEST,
        "Vital Tracker",
        "Log your vitals for 7 consecutive days",
        500,
        7,
        QuestCategory.VITALS,
        [
            "Log heart rate today",
            "Log SpO2 today",
            "Log 3 days in a row",
            "Log 7 days in a row",
        ],
    ),
    (
        COMMUNITY_GUARDIAN_QUEST,
        "Community Guardian",
        "Report 3 health hazards in your community",
        750,
        14,
        QuestCategory.COMMUNITY,
        [
            "Report first hazard",
            "Report second hazard",
            "Report third hazard",
        ],
    ),
    (
        AI_EXPLORER_QUEST,
        "AI Health Explorer",
        "Complete 5 AI Doctor consultations",
        600,
        30,
        QuestCategory.VITALS,
        [
            "First consultation",
            "Upload a lab report",
            "Get health score analysis",
            "Share health radar chart",
            "5 total consultations",
        ],
    ),
    (
        MOVE_AND_GROOVE_QUEST,
        "Move & Groove",
        "Log 10,000 steps for 5 days this week",
        400,
        7,
        QuestCategory.ACTIVITY,
        [f"Log steps Day {day}" for day in range(1, 6)],
    ),
]


def default_quests(now: datetime) -> list[HealthQuest]:
    """Fresh, untouched copies of the quest catalog with deadlines from ``now``."""
    return [
        HealthQuest(
            id=quest_id,
            title=title,
            description=description,
            reward=reward,
            deadline=to_iso(now + timedelta(days=days)),
            category=category,
            tasks=[QuestTask(name=name) for name in task_names],
        )
        for quest_id, title, description, reward, days, category, task_names in _QUEST_DEFINITIONS
    ]


def default_health_vector() -> HealthVector:
    """Mid-range starting point for a new user."""
    return HealthVector()
