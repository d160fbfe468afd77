"""MCP tools for the community hazard map."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from carenexa.domains.health.store.health_store import HAZARD_REPORT_POINTS
from carenexa.domains.health.store.models import PinType

if TYPE_CHECKING:
    from carenexa.domains.health.store.health_store import HealthStore

logger = logging.getLogger(__name__)

_PIN_TYPES = sorted(t.value for t in PinType)


def register_community_tools(
    mcp: FastMCP,
    store: HealthStore,
) -> None:
    """Register community map tools on the MCP server."""

    @mcp.tool
    async def report_hazard(
        ctx: Context,
        lat: float,
        lng: float,
        pin_type: str,
        description: str,
        category: str = "general",
    ) -> str:
        """Drop a pin on the community map and earn Vita Points.

        Args:
            lat: Latitude in degrees.
            lng: Longitude in degrees.
            pin_type: 'safe', 'caution' or 'danger'.
            description: What was observed.
            category: Free-form grouping (e.g., 'air_quality').
        """
        if pin_type not in _PIN_TYPES:
            return json.dumps({
                "status": "error",
                "message": f"Unknown pin type {pin_type!r}; expected one of {_PIN_TYPES}",
            })
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            return json.dumps({"status": "error", "message": "Coordinates out of range"})

        pin = store.report_hazard(
            lat=lat,
            lng=lng,
            type=pin_type,
            description=description,
            category=category,
        )
        logger.info("Community pin %s reported (%s)", pin.id, pin_type)
        return json.dumps({
            "status": "saved",
            "pin": pin.to_dict(),
            "points_awarded": HAZARD_REPORT_POINTS,
            "vita_points": store.vita_points,
        })

    @mcp.tool
    async def list_community_pins(ctx: Context, pin_type: str = "all") -> str:
        """List community map pins, newest first.

        Args:
            pin_type: 'safe', 'caution', 'danger' or 'all'.
        """
        pins = store.community_pins
        if pin_type != "all":
            if pin_type not in _PIN_TYPES:
                return json.dumps({"status": "error", "message": f"Unknown pin type {pin_type!r}"})
            pins = [p for p in pins if p.type == pin_type]
        return json.dumps({
            "status": "ok",
            "count": len(pins),
            "pins": [p.to_dict() for p in pins],
        }, indent=2)

    @mcp.tool
    async def remove_community_pin(ctx: Context, pin_id: str) -> str:
        """Delete a pin from the community map.

        Args:
            pin_id: Pin identifier as returned by report_hazard.
        """
        if not any(p.id == pin_id for p in store.community_pins):
            return json.dumps({"status": "not_found", "message": f"No pin {pin_id!r}"})
        store.remove_community_pin(pin_id)
        return json.dumps({"status": "removed", "pin_id": pin_id})
