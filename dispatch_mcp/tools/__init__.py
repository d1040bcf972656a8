"""MCP tools for Dispatch MCP."""

from dispatch_mcp.tools.run import format_report, run_script, select_targets

__all__ = ["format_report", "run_script", "select_targets"]
