"""CareNexa server entry point: ``carenexa-server`` or ``python -m carenexa.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from carenexa.core.config.settings import Settings, get_settings
from carenexa.core.server.app import create_app

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind(settings: Settings) -> None:
    """Refuse a network bind that would expose health data without auth.

    Raises:
        RuntimeError: For a non-loopback HTTP host unless explicitly allowed.
    """
    if settings.carenexa_transport == "stdio":
        return
    if _is_loopback_host(settings.carenexa_host):
        return
    if settings.carenexa_allow_insecure_bind:
        logger.warning(
            "Binding to non-loopback host %s with no auth layer; health data is exposed",
            settings.carenexa_host,
        )
        return
    raise RuntimeError(
        f"Refusing to bind the CareNexa server to non-loopback host "
        f"{settings.carenexa_host!r} without an auth layer. "
        "Set CARENEXA_ALLOW_INSECURE_BIND=true to override (unsafe)."
    )


def run() -> None:
    """Start the CareNexa MCP server on the configured transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.carenexa_log_level.upper(), logging.INFO),
        format=_LOG_FORMAT,
    )
    check_bind(settings)

    mcp = create_app()
    if settings.carenexa_transport == "stdio":
        logger.info("Starting CareNexa Health server on stdio")
        mcp.run(transport="stdio")
        return

    logger.info(
        "Starting CareNexa Health server on http://%s:%d (provider=%s, storage=%s)",
        settings.carenexa_host,
        settings.carenexa_port,
        settings.llm_provider,
        settings.storage_path,
    )
    mcp.run(
        transport="streamable-http",
        host=settings.carenexa_host,
        port=settings.carenexa_port,
    )


if __name__ == "__main__":
    run()
