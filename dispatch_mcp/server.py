"""Dispatch MCP FastMCP server.

This is a thin wrapper that wires the MCP server to the tools and
resources. All orchestration logic lives in services/.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from dispatch_mcp.config import Settings
from dispatch_mcp.dependencies import Dependencies
from dispatch_mcp.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from dispatch_mcp.resources import list_hosts_resource
from dispatch_mcp.tools import run_script
from dispatch_mcp.utils.console import MCPRequestFormatter

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
)


def _configure_logging(settings: Settings) -> None:
    """Configure colorful logging for the dispatch_mcp package.

    Called at module load time so logging is configured before any
    logger is used, regardless of how the server is started.
    """
    use_colors = settings.log_colors and sys.stderr.isatty()

    package_logger = logging.getLogger("dispatch_mcp")
    package_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_logging(Settings.from_env())

logger = logging.getLogger(__name__)


def configure_middleware(server: FastMCP, settings: Settings) -> ErrorHandlingMiddleware:
    """Add MCP middleware (first added = innermost).

    Returns:
        The error middleware, whose counts are logged at shutdown
    """
    errors = ErrorHandlingMiddleware(include_traceback=settings.include_traceback)
    server.add_middleware(errors)
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=float(settings.slow_threshold_ms),
        )
    )
    return errors


def create_server(deps: Dependencies | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        deps: Session dependencies. When omitted they are built from the
            environment on first use and hosts are loaded for
            DISPATCH_GROUP.

    Returns:
        Configured FastMCP server instance
    """
    session: dict[str, Dependencies] = {}
    if deps is not None:
        session["deps"] = deps

    def get_deps() -> Dependencies:
        if "deps" not in session:
            created = Dependencies.create()
            created.load_hosts()
            session["deps"] = created
        return session["deps"]

    @asynccontextmanager
    async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
        """Build session dependencies at startup and close connections at exit."""
        logger.info("Dispatch MCP server starting up")
        current = get_deps()
        hosts = current.registry.list()
        logger.info(
            "Loaded %d host(s): %s",
            len(hosts),
            ", ".join(h.name for h in hosts) if hosts else "(none)",
        )
        try:
            yield {"deps": current}
        finally:
            logger.info("Dispatch MCP server shutting down")
            error_stats = errors.get_error_stats()
            if error_stats:
                logger.info("Errors during session: %s", error_stats)
            await current.cleanup()

    server = FastMCP("dispatch_mcp", lifespan=app_lifespan)
    errors = configure_middleware(server, Settings.from_env())

    async def run_script_tool(
        script: str,
        hosts: list[str] | None = None,
        mode: str = "single",
        interpreter: str = "bash",
        coordinator: str | None = None,
        arguments: list[str] | None = None,
        timeout: int | None = None,
    ) -> str:
        """Run a script on remote hosts over SSH and report per-host results.

        Args:
            script: Script source to upload and execute
            hosts: Host names to target (default: all reachable hosts)
            mode: "single" (one host), "broadcast" (every host independently)
                or "clustered" (coordinator only, workers passed in DISPATCH_WORKERS)
            interpreter: "bash", "sh", "python" or "rscript"
            coordinator: Host that coordinates a clustered run
            arguments: Extra arguments passed to the script
            timeout: Per-host timeout in seconds
        """
        return await run_script(
            get_deps(),
            script,
            hosts=hosts,
            mode=mode,
            interpreter=interpreter,
            coordinator=coordinator,
            arguments=arguments,
            timeout=timeout,
        )

    async def list_hosts() -> str:
        """List registered hosts with role and reachability."""
        return await list_hosts_resource(get_deps())

    server.tool(name="run_script")(run_script_tool)
    server.resource("hosts://list", name="hosts")(list_hosts)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


# Default server instance
mcp = create_server()
