"""Utilities for Dispatch MCP."""

from dispatch_mcp.utils.console import ColorfulFormatter, MCPRequestFormatter
from dispatch_mcp.utils.hostname import get_server_hostname, is_localhost_target
from dispatch_mcp.utils.ping import check_host_online, check_hosts_online
from dispatch_mcp.utils.shell import export_prefix, join_command, quote_path

__all__ = [
    "check_host_online",
    "check_hosts_online",
    "ColorfulFormatter",
    "export_prefix",
    "get_server_hostname",
    "is_localhost_target",
    "join_command",
    "MCPRequestFormatter",
    "quote_path",
]
