"""CarePoint server entry point: ``python -m carepoint.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from carepoint.core.config.settings import get_settings
from carepoint.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the CarePoint MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.carepoint_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger = logging.getLogger(__name__)
    if not settings.carepoint_allow_insecure_bind and not _is_loopback_host(
        settings.carepoint_host
    ):
        raise RuntimeError(
            "Refusing to bind CarePoint server to a non-loopback host without an auth layer. "
            "Set CAREPOINT_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting CarePoint risk server on %s:%d",
        settings.carepoint_host,
        settings.carepoint_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.carepoint_host,
        port=settings.carepoint_port,
    )


if __name__ == "__main__":
    run()
