"""Dispatch MCP: run scripts on remote hosts over SSH."""

__version__ = "0.1.0"
