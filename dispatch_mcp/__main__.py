"""Entry point for the dispatch_mcp server."""

import logging

from dispatch_mcp.config import Settings
from dispatch_mcp.server import mcp  # importing also configures logging

logger = logging.getLogger(__name__)


def run_server(settings: Settings | None = None) -> None:
    """Run the MCP server with the configured transport."""
    settings = settings or Settings.from_env()

    if settings.transport == "stdio":
        logger.info("Starting Dispatch MCP server (transport=stdio)")
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting Dispatch MCP server (transport=http, host=%s, port=%d)",
            settings.http_host,
            settings.http_port,
        )
        mcp.run(
            transport="http",
            host=settings.http_host,
            port=settings.http_port,
        )


if __name__ == "__main__":
    run_server()
