"""Derived values: health score, level and quest progress.

All functions here are pure and recomputed on read.
"""

from __future__ import annotations

import math
from typing import Iterable

from carenexa.domains.health.store.models import HEALTH_DIMENSIONS, HealthVector, QuestTask

POINTS_PER_LEVEL = 1000

# Distance from the ideal point (all 1.0) to the origin.
MAX_VECTOR_DISTANCE = math.sqrt(len(HEALTH_DIMENSIONS))


def vector_distance(vector: HealthVector) -> float:
    """Euclidean distance from ``vector`` to the ideal vector of all 1.0."""
    return math.sqrt(sum((1.0 - value) ** 2 for value in vector.values()))


def compute_health_score(vector: HealthVector) -> int:
    """Similarity of ``vector`` to the ideal point, scaled to 0-100.

    ``round((1 - distance / sqrt(8)) * 100)``. Because the penalty grows
    with the Euclidean distance, many dimensions that are a little low cost
    less than one dimension at zero: one zero with seven ones scores 65,
    while all eight at 0.6 score 60.

    Values are not clamped. A dimension above 1.0 still moves the point
    away from the ideal, and values far outside [0, 1] can push the score
    below 0.
    """
    distance = vector_distance(vector)
    return _round_half_up((1 - distance / MAX_VECTOR_DISTANCE) * 100)


def level_for_points(points: int) -> int:
    """Level 1 covers 0-999 points, level 2 covers 1000-1999, and so on."""
    return points // POINTS_PER_LEVEL + 1


def level_progress(points: int) -> tuple[int, float]:
    """Points earned inside the current level and percent toward the next."""
    into_level = points % POINTS_PER_LEVEL
    return into_level, into_level / POINTS_PER_LEVEL * 100


def quest_progress(tasks: Iterable[QuestTask]) -> int:
    """Percentage of completed tasks, rounded to the nearest integer."""
    tasks = list(tasks)
    if not tasks:
        return 0
    completed = sum(1 for t in tasks if t.complete)
    return _round_half_up(completed / len(tasks) * 100)


def _round_half_up(value: float) -> int:
    # Builtin round() is banker's rounding; the web client uses Math.round.
    return math.floor(value + 0.5)
