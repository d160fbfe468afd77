"""MCP tools for chatting with Dr. Echo."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from carenexa.core.llm.system_prompt import CONSULTATION_DISCLAIMER

if TYPE_CHECKING:
    from carenexa.domains.health.assistant.pipeline import AssistantPipeline

logger = logging.getLogger(__name__)


def register_assistant_tools(
    mcp: FastMCP,
    pipeline: AssistantPipeline,
) -> None:
    """Register Dr. Echo chat tools on the MCP server."""

    @mcp.tool
    async def send_chat_message(ctx: Context, message: str) -> str:
        """Ask Dr. Echo a health question.

        The reply always arrives: if the AI service is unavailable, Dr. Echo
        answers from a limited offline responder and says so.

        Args:
            message: The question or message to send.
        """
        if pipeline.is_typing:
            return json.dumps({"status": "busy", "message": "Dr. Echo is still answering"})

        reply = await pipeline.send_message(message)
        if reply is None:
            return json.dumps({"status": "error", "message": "Message is empty"})

        return json.dumps({
            "status": "ok",
            "reply": reply.to_dict(),
            "degraded": pipeline.degraded,
            "state": str(pipeline.state),
            "disclaimer": CONSULTATION_DISCLAIMER,
        })

    @mcp.tool
    async def get_chat_transcript(ctx: Context) -> str:
        """Return the conversation with Dr. Echo, oldest message first."""
        messages = pipeline.export_transcript()
        return json.dumps({
            "status": "ok",
            "agent_type": pipeline.agent_type,
            "count": len(messages),
            "messages": messages,
        }, indent=2)

    @mcp.tool
    async def clear_chat(ctx: Context) -> str:
        """Start a new conversation and delete the saved one."""
        pipeline.clear_messages()
        logger.info("Chat transcript cleared")
        return json.dumps({"status": "cleared", "messages": pipeline.export_transcript()})
