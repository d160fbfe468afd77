"""MCP tools for health quests, Vita Points and levels."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from carenexa.domains.health.store.health_store import HealthStore

logger = logging.getLogger(__name__)


def register_quest_tools(
    mcp: FastMCP,
    store: HealthStore,
) -> None:
    """Register gamification tools on the MCP server."""

    def _standing() -> dict:
        into_level, pct = store.level_progress()
        return {
            "vita_points": store.vita_points,
            "level": store.level,
            "points_into_level": into_level,
            "level_progress_pct": pct,
            "streak_days": store.streak_days,
        }

    @mcp.tool
    async def list_quests(ctx: Context) -> str:
        """List health quests with their tasks, progress and rewards."""
        return json.dumps({
            "status": "ok",
            "quests": [q.to_dict() for q in store.quests],
            **_standing(),
        }, indent=2)

    @mcp.tool
    async def complete_quest_task(
        ctx: Context,
        quest_id: str,
        task_name: str,
    ) -> str:
        """Mark a quest task complete and collect its Vita Points.

        Finishing the last task of a quest pays the full quest reward.

        Args:
            quest_id: Quest identifier (e.g., 'q1').
            task_name: Exact task name as listed by list_quests.
        """
        quest = store.get_quest(quest_id)
        if quest is None:
            return json.dumps({"status": "not_found", "message": f"No quest {quest_id!r}"})
        task = quest.find_task(task_name)
        if task is None:
            return json.dumps({
                "status": "not_found",
                "message": f"Quest {quest_id!r} has no task {task_name!r}",
            })
        if task.complete:
            return json.dumps({"status": "already_complete", "quest_id": quest_id, "task_name": task_name})

        awarded = store.reward_quest_task(quest_id, task_name)
        updated = store.get_quest(quest_id)
        return json.dumps({
            "status": "completed",
            "quest_id": quest_id,
            "task_name": task_name,
            "progress": updated.progress if updated else quest.progress,
            "points_awarded": awarded,
            **_standing(),
        })

    @mcp.tool
    async def add_vita_points(ctx: Context, points: int) -> str:
        """Award Vita Points. Every 1000 points is a level.

        Args:
            points: Non-negative number of points to add.
        """
        if points < 0:
            return json.dumps({"status": "error", "message": "points must not be negative"})
        store.add_vita_points(points)
        return json.dumps({"status": "ok", **_standing()})
