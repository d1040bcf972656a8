"""Protocol interfaces for the collaborators the core depends on.

The dispatcher only talks to a remote transport, the registry only
consumes a provisioning service, and reports only consume a cost
estimator. Any object with the right methods will do, which keeps
tests free of real SSH and cloud calls.

Usage Example:

    from dispatch_mcp.protocols import RemoteTransport

    class FakeTransport:
        async def connect(self, host):
            return object()
        ...

    dispatcher = ScriptDispatcher(registry, FakeTransport(), interpreters)
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from dispatch_mcp.models import CommandResult, Host


@runtime_checkable
class SSHConnectionPool(Protocol):
    """Protocol for SSH connection pooling."""

    async def get_connection(self, host: Host) -> Any:
        """Get or create connection for host.

        Raises:
            Exception: If unable to connect
        """
        ...

    async def remove_connection(self, host_name: str) -> None:
        """Remove connection from pool. Safe to call for unknown hosts."""
        ...

    async def close_all(self) -> None:
        ...


@runtime_checkable
class RemoteTransport(Protocol):
    """Remote execution transport (secure shell or equivalent).

    ``connect`` returns an opaque channel that the other methods accept.
    """

    async def connect(self, host: Host) -> Any:
        """Open a channel to the host.

        Raises:
            HostConnectionError: If the host cannot be reached
        """
        ...

    async def transfer(self, channel: Any, payload: bytes, remote_path: str) -> None:
        """Write payload to remote_path on the channel's host.

        Raises:
            TransferError: If the payload could not be written
        """
        ...

    async def run(
        self,
        channel: Any,
        command: str,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run command and return its exit status and output.

        A non-zero exit status is returned, not raised.
        """
        ...

    async def remove(self, channel: Any, remote_path: str) -> None:
        """Delete remote_path, ignoring a missing file."""
        ...


@runtime_checkable
class ProvisioningService(Protocol):
    """Source of compute hosts, keyed by a group (resource-group analogue).

    Creating and deleting hosts is the service's business; the core
    only lists what currently exists.
    """

    def list(self, group: str) -> Sequence[Host]:
        ...


@runtime_checkable
class CostEstimator(Protocol):
    """Billing collaborator: cost of keeping a host busy for an interval."""

    def estimate(self, host: Host, interval: float) -> float:
        """Return the cost of ``interval`` seconds on ``host``."""
        ...
