"""Services for Dispatch MCP."""

from dispatch_mcp.services.connection import (
    HostConnectionError,
    get_connection_with_retry,
)
from dispatch_mcp.services.coordinator import ExecutionCoordinator, run_job
from dispatch_mcp.services.dispatcher import (
    JobValidationError,
    ScriptDispatcher,
    validate_job,
)
from dispatch_mcp.services.interpreters import (
    InterpreterHandler,
    InterpreterRegistry,
    UnknownInterpreterError,
)
from dispatch_mcp.services.pool import ConnectionPool
from dispatch_mcp.services.provisioning import SSHConfigProvisioner
from dispatch_mcp.services.recorder import RunRecorder, RunToken
from dispatch_mcp.services.registry import HostRegistry
from dispatch_mcp.services.transport import SSHTransport, TransferError

__all__ = [
    "ConnectionPool",
    "ExecutionCoordinator",
    "HostConnectionError",
    "HostRegistry",
    "InterpreterHandler",
    "InterpreterRegistry",
    "JobValidationError",
    "RunRecorder",
    "RunToken",
    "ScriptDispatcher",
    "SSHConfigProvisioner",
    "SSHTransport",
    "TransferError",
    "UnknownInterpreterError",
    "get_connection_with_retry",
    "run_job",
    "validate_job",
]
