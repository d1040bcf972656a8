"""MCP resources for Dispatch MCP."""

from dispatch_mcp.resources.hosts import list_hosts_resource

__all__ = ["list_hosts_resource"]
