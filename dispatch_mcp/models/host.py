"""Remote host data models."""

from dataclasses import dataclass
from enum import Enum


class HostRole(str, Enum):
    """Role a host plays in a clustered run."""

    COORDINATOR = "coordinator"
    WORKER = "worker"


@dataclass(frozen=True)
class Host:
    """A remote compute host reachable over SSH.

    Hosts are immutable; the registry swaps in a new instance
    (via ``dataclasses.replace``) when reachability changes.
    """

    name: str
    address: str
    role: HostRole = HostRole.WORKER
    reachable: bool = True
    user: str = "root"
    port: int = 22
    identity_file: str | None = None
    is_localhost: bool = False

    @property
    def connection_hostname(self) -> str:
        """Get the hostname to use for SSH connection.

        Returns:
            127.0.0.1 if is_localhost, otherwise the host address
        """
        return "127.0.0.1" if self.is_localhost else self.address

    @property
    def connection_port(self) -> int:
        """Get the port to use for SSH connection.

        Returns:
            22 if is_localhost, otherwise the configured port
        """
        return 22 if self.is_localhost else self.port

    @property
    def is_coordinator(self) -> bool:
        return self.role is HostRole.COORDINATOR
