"""Aura server entry point: ``python -m aura.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from aura.core.config.settings import get_settings
from aura.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the Aura MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.aura_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.aura_allow_insecure_bind and not _is_loopback_host(settings.aura_host):
        raise RuntimeError(
            "Refusing to bind the Aura server to a non-loopback host without an auth layer. "
            "Set AURA_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info("Starting Aura migraine server on %s:%d", settings.aura_host, settings.aura_port)

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.aura_host,
        port=settings.aura_port,
    )


if __name__ == "__main__":
    run()
