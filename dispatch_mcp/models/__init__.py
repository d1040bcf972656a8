"""Data models for Dispatch MCP."""

from dispatch_mcp.models.command import CommandResult
from dispatch_mcp.models.host import Host, HostRole
from dispatch_mcp.models.job import ExecutionMode, JobState, RetryPolicy, ScriptJob
from dispatch_mcp.models.run import FailureKind, JobReport, RunResult
from dispatch_mcp.models.ssh import PooledConnection

__all__ = [
    "CommandResult",
    "ExecutionMode",
    "FailureKind",
    "Host",
    "HostRole",
    "JobReport",
    "JobState",
    "PooledConnection",
    "RetryPolicy",
    "RunResult",
    "ScriptJob",
]
