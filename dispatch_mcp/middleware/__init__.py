"""Dispatch MCP middleware components."""

from dispatch_mcp.middleware.base import DispatchMiddleware
from dispatch_mcp.middleware.errors import ErrorHandlingMiddleware
from dispatch_mcp.middleware.logging import LoggingMiddleware

__all__ = [
    "DispatchMiddleware",
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
]
