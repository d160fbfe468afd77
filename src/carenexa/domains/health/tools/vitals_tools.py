"""MCP tools for vitals, lab report ingestion and the health vector.

Readings are stored as given: values are not range-checked, only the vital
type and source are validated against the known enums.
"""

from __future__ import annotations

import json
import logging
import math
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from carenexa.core.runtime.capabilities import Runtime, parse_iso, to_iso
from carenexa.domains.health.store.models import HEALTH_DIMENSIONS, VitalSource, VitalType

if TYPE_CHECKING:
    from carenexa.domains.health.store.health_store import HealthStore

logger = logging.getLogger(__name__)

_VITAL_TYPES = sorted(t.value for t in VitalType)
_VITAL_SOURCES = sorted(s.value for s in VitalSource)


def _invalid(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def register_vitals_tools(
    mcp: FastMCP,
    store: HealthStore,
    runtime: Runtime,
    extraction_model: str,
) -> None:
    """Register vitals and health-vector tools on the MCP server.

    ``extraction_model`` is recorded on lab report receipts when the caller
    does not name the model that extracted the results.
    """

    @mcp.tool
    async def log_vital(
        ctx: Context,
        vital_type: str,
        value: float,
        unit: str = "",
        timestamp: str = "",
        source: str = "manual",
    ) -> str:
        """Record one vital sign reading.

        Args:
            vital_type: One of 'heart_rate', 'spo2', 'sleep_score', 'steps', 'stress'.
            value: The reading.
            unit: Unit of measurement (e.g., 'bpm', '%').
            timestamp: When it was taken (ISO 8601). Defaults to now.
            source: 'manual', 'ppg', 'ocr' or 'wearable'.
        """
        if vital_type not in _VITAL_TYPES:
            return _invalid(f"Unknown vital type {vital_type!r}; expected one of {_VITAL_TYPES}")
        if source not in _VITAL_SOURCES:
            return _invalid(f"Unknown source {source!r}; expected one of {_VITAL_SOURCES}")
        if timestamp:
            try:
                parse_iso(timestamp)
            except ValueError:
                return _invalid(f"Invalid timestamp {timestamp!r}")
        else:
            timestamp = to_iso(runtime.now())

        entry = store.add_vital(
            type=vital_type,
            value=value,
            unit=unit,
            timestamp=timestamp,
            source=source,
        )
        logger.info("Vital logged: %s=%s %s (%s)", vital_type, value, unit, source)
        return json.dumps({"status": "saved", "vital": entry.to_dict()})

    @mcp.tool
    async def get_vitals(
        ctx: Context,
        vital_type: str = "all",
        limit: int = 50,
    ) -> str:
        """List stored vitals, most recent first.

        Args:
            vital_type: A vital type, or 'all'.
            limit: Maximum number of readings to return.
        """
        if vital_type == "all":
            vitals = store.vitals
        elif vital_type in _VITAL_TYPES:
            vitals = store.get_vitals_by_type(vital_type)
        else:
            return _invalid(f"Unknown vital type {vital_type!r}")

        return json.dumps({
            "status": "ok",
            "total": len(vitals),
            "vitals": [v.to_dict() for v in vitals[:max(limit, 0)]],
        }, indent=2)

    @mcp.tool
    async def get_recent_vitals(ctx: Context, days: float = 7) -> str:
        """List vitals taken within the last ``days`` days.

        Args:
            days: Look-back window in days. Zero or more.
        """
        if math.isnan(days) or days < 0:
            return _invalid("days must be a non-negative number")
        vitals = store.get_recent_vitals(days)
        return json.dumps({
            "status": "ok",
            "period_days": days,
            "count": len(vitals),
            "vitals": [v.to_dict() for v in vitals],
        }, indent=2)

    @mcp.tool
    async def ingest_lab_report(
        ctx: Context,
        results: list[dict[str, Any]],
        lab_name: str = "",
        audit_hash: str = "",
        model_version: str = "",
    ) -> str:
        """Store results already extracted from a lab report.

        Heart-rate and oxygen-saturation results become vitals; the upload
        earns Vita Points and is recorded as a consultation receipt.

        Args:
            results: Items with 'testName', 'value' and 'unit'.
            lab_name: Name of the issuing lab.
            audit_hash: Hash reported by the extractor, if any.
            model_version: Model that extracted the results; defaults to the
                configured lab extraction model.
        """
        if not results:
            return _invalid("No lab results provided")
        added = store.ingest_lab_results(
            results,
            lab_name=lab_name,
            audit_hash=audit_hash,
            model_version=model_version or extraction_model,
        )
        return json.dumps({
            "status": "saved",
            "results_received": len(results),
            "vitals_added": [v.to_dict() for v in added],
            "vita_points": store.vita_points,
        })

    @mcp.tool
    async def update_health_vector(
        ctx: Context,
        dimensions: dict[str, float],
    ) -> str:
        """Replace some health vector dimensions.

        Args:
            dimensions: Mapping of dimension name to a value, usually in [0, 1].
        """
        unknown = sorted(set(dimensions) - set(HEALTH_DIMENSIONS))
        if unknown:
            return _invalid(f"Unknown health dimensions: {unknown}")
        store.update_health_vector(dimensions)
        return json.dumps({
            "status": "updated",
            "health_vector": store.health_vector.to_dict(),
            "health_score": store.compute_health_score(),
        })

    @mcp.tool
    async def health_score(ctx: Context) -> str:
        """Return the health vector and the overall 0-100 health score."""
        return json.dumps({
            "status": "ok",
            "health_vector": store.health_vector.to_dict(),
            "health_score": store.compute_health_score(),
        }, indent=2)
