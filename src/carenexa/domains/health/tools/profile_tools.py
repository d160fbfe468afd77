"""MCP tools for the user profile and the SOS countdown.

The SOS state lives only in memory; a restart always comes back inactive.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from carenexa.domains.health.store.models import GeoPoint

if TYPE_CHECKING:
    from carenexa.domains.health.store.health_store import HealthStore

logger = logging.getLogger(__name__)


def register_profile_tools(
    mcp: FastMCP,
    store: HealthStore,
) -> None:
    """Register profile and SOS tools on the MCP server."""

    @mcp.tool
    async def update_user_profile(
        ctx: Context,
        age: int | None = None,
        gender: str | None = None,
        weight: float | None = None,
        height: float | None = None,
        blood_type: str | None = None,
        emergency_contact: str | None = None,
        conditions: list[str] | None = None,
        medications: list[str] | None = None,
    ) -> str:
        """Update profile fields. Omitted fields keep their current value.

        Args:
            age: Age in years.
            gender: Self-described gender.
            weight: Weight in kilograms.
            height: Height in centimeters.
            blood_type: e.g. 'O+'.
            emergency_contact: Name or phone number to call in an emergency.
            conditions: Known conditions (replaces the current list).
            medications: Current medications (replaces the current list).
        """
        partial: dict[str, Any] = {
            name: value
            for name, value in (
                ("age", age),
                ("gender", gender),
                ("weight", weight),
                ("height", height),
                ("blood_type", blood_type),
                ("emergency_contact", emergency_contact),
                ("conditions", conditions),
                ("medications", medications),
            )
            if value is not None
        }
        if not partial:
            return json.dumps({"status": "error", "message": "No profile fields provided"})
        if age is not None and age < 0:
            return json.dumps({"status": "error", "message": "age must not be negative"})

        store.update_user_profile(partial)
        logger.info("User profile updated: %s", sorted(partial))
        return json.dumps({"status": "updated", "profile": store.user_profile.to_dict()})

    @mcp.tool
    async def get_user_profile(ctx: Context) -> str:
        """Return the stored user profile."""
        return json.dumps({"status": "ok", "profile": store.user_profile.to_dict()}, indent=2)

    @mcp.tool
    async def trigger_sos(
        ctx: Context,
        lat: float | None = None,
        lng: float | None = None,
    ) -> str:
        """Start the emergency SOS countdown.

        Args:
            lat: Current latitude, if known.
            lng: Current longitude, if known.
        """
        location = GeoPoint(lat=lat, lng=lng) if lat is not None and lng is not None else None
        store.trigger_sos(location)
        logger.warning("SOS triggered (location known: %s)", location is not None)
        return json.dumps({"status": "active", "sos": store.sos_state.to_dict()})

    @mcp.tool
    async def cancel_sos(ctx: Context) -> str:
        """Cancel the SOS countdown and reset it."""
        store.cancel_sos()
        logger.info("SOS cancelled")
        return json.dumps({"status": "cancelled", "sos": store.sos_state.to_dict()})

    @mcp.tool
    async def tick_sos_countdown(ctx: Context) -> str:
        """Advance the SOS countdown by one second.

        When an active countdown reaches zero, the emergency contact from
        the profile is reported for notification.
        """
        if not store.sos_state.active:
            return json.dumps({"status": "inactive", "sos": store.sos_state.to_dict()})
        store.decrement_sos_countdown()
        sos = store.sos_state
        payload: dict[str, Any] = {"status": "counting", "sos": sos.to_dict()}
        if sos.countdown == 0:
            payload["status"] = "expired"
            payload["emergency_contact"] = store.user_profile.emergency_contact
        return json.dumps(payload)
