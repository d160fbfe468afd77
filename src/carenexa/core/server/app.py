"""CareNexa Health MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from carenexa.core.config.settings import get_settings
from carenexa.core.llm.provider import LLMProvider
from carenexa.core.runtime.capabilities import Runtime, SystemRuntime
from carenexa.core.storage.kv import KeyValueStorage, SQLiteStorage, open_storage
from carenexa.domains.health.assistant.pipeline import AssistantPipeline, provider_from_settings
from carenexa.domains.health.store.health_store import HealthStore
from carenexa.domains.health.tools.assistant_tools import register_assistant_tools
from carenexa.domains.health.tools.audit_tools import register_audit_tools
from carenexa.domains.health.tools.community_tools import register_community_tools
from carenexa.domains.health.tools.profile_tools import register_profile_tools
from carenexa.domains.health.tools.quest_tools import register_quest_tools
from carenexa.domains.health.tools.vitals_tools import register_vitals_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "CareNexa Health"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    store_override: HealthStore | None = None,
    provider_override: LLMProvider | None = None,
    storage_override: KeyValueStorage | None = None,
    runtime_override: Runtime | None = None,
) -> FastMCP:
    """Create and configure the CareNexa Health MCP server.

    This is the composition root. It:
    1. Creates the FastMCP server instance
    2. Opens the key-value storage (durable, or in-memory on failure)
    3. Builds and loads the health store
    4. Creates the remote provider and the Dr. Echo pipeline
    5. Registers all tools
    """
    settings = get_settings()
    runtime = runtime_override or SystemRuntime()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "CareNexa personal health server. Tracks vitals, a health vector and "
            "score, gamified quests, community hazard reports and an SOS "
            "countdown, and hosts Dr. Echo, an AI health assistant that keeps "
            "hashed consultation receipts."
        ),
    )

    # --- Storage ---
    storage = storage_override if storage_override is not None else open_storage(settings)

    # --- Health store ---
    if store_override is not None:
        store = store_override
    else:
        store = HealthStore(storage, runtime)
    store.init()

    # --- Dr. Echo ---
    provider = provider_override if provider_override is not None else provider_from_settings(settings)
    pipeline = AssistantPipeline(
        store,
        storage,
        provider,
        runtime,
        agent_type=settings.assistant_agent_type,
        max_tokens=settings.assistant_max_tokens,
        temperature=settings.assistant_temperature,
        fallback_delay=settings.fallback_token_delay_s,
        stream=settings.assistant_streaming,
    )
    if provider is None:
        logger.warning("Dr. Echo has no remote model configured; replies use offline mode")
    else:
        logger.info("Dr. Echo using %s (%s)", settings.llm_provider, provider.model)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "llm_provider": settings.llm_provider,
            "assistant_online": pipeline.has_remote and not pipeline.degraded,
            "assistant_state": str(pipeline.state),
            "durable_storage": isinstance(storage, SQLiteStorage),
            "vitals_stored": len(store.vitals),
            "health_score": store.compute_health_score(),
        }

    register_vitals_tools(server, store, runtime, settings.lab_extraction_model)
    register_quest_tools(server, store)
    register_community_tools(server, store)
    register_profile_tools(server, store)
    register_audit_tools(server, store)
    register_assistant_tools(server, pipeline)
    logger.info("CareNexa health tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
