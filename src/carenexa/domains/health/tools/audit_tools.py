"""MCP tools for viewing and checking consultation receipts.

Receipts hold a SHA-256 of each AI answer rather than the answer itself;
``verify_consultation`` lets the user confirm a saved answer is unchanged.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from carenexa.core.audit.digest import verify_receipt

if TYPE_CHECKING:
    from carenexa.domains.health.store.health_store import HealthStore

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    store: HealthStore,
) -> None:
    """Register consultation receipt tools on the MCP server."""

    @mcp.tool
    async def consultation_receipts(
        ctx: Context,
        limit: int = 20,
        agent_type: str = "",
    ) -> str:
        """List consultation receipts, most recent first.

        Args:
            limit: Maximum number of receipts to return.
            agent_type: Only receipts from this agent (e.g., 'general', 'ocr').
        """
        receipts = store.consultation_receipts
        if agent_type:
            receipts = [r for r in receipts if r.agent_type == agent_type]
        return json.dumps({
            "status": "ok",
            "total": len(receipts),
            "receipts": [r.export() for r in receipts[:max(limit, 0)]],
            "note": "Receipts store a hash of each AI response, never the response text.",
        }, indent=2)

    @mcp.tool
    async def verify_consultation(
        ctx: Context,
        receipt_id: str,
        response_text: str,
    ) -> str:
        """Check that an AI answer matches the hash recorded in its receipt.

        Args:
            receipt_id: Receipt identifier (e.g., 'cr_1767225600000').
            response_text: The answer text exactly as displayed.
        """
        receipt = next((r for r in store.consultation_receipts if r.id == receipt_id), None)
        if receipt is None:
            return json.dumps({"status": "not_found", "message": f"No receipt {receipt_id!r}"})

        verified = verify_receipt(receipt, response_text)
        if not verified:
            logger.warning("Receipt %s did not match the supplied response", receipt_id)
        return json.dumps({
            "status": "ok",
            "receipt_id": receipt_id,
            "verified": verified,
            "model_version": receipt.model_version,
        })
