"""Script job data models."""

import uuid
from dataclasses import dataclass, field
from enum import Enum

from dispatch_mcp.models.host import Host, HostRole


class ExecutionMode(str, Enum):
    """How a script job is spread over its target hosts.

    SINGLE runs on exactly one host. BROADCAST runs the same script
    independently on every target. CLUSTERED runs on the coordinator
    only, which drives the workers itself.
    """

    SINGLE = "single"
    BROADCAST = "broadcast"
    CLUSTERED = "clustered"


class JobState(str, Enum):
    """Execution coordinator lifecycle."""

    IDLE = "idle"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RetryPolicy:
    """Connection retry policy supplied by the caller.

    ``max_attempts=1`` means no retry. The delay before attempt ``n``
    (n >= 2) is ``backoff * multiplier ** (n - 2)`` seconds.
    """

    max_attempts: int = 1
    backoff: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.backoff < 0:
            raise ValueError(f"backoff must be >= 0, got {self.backoff}")

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before the given 1-based attempt."""
        if attempt <= 1:
            return 0.0
        return self.backoff * self.multiplier ** (attempt - 2)


@dataclass(frozen=True)
class ScriptJob:
    """A script payload and the hosts it should run on."""

    payload: str | bytes
    mode: ExecutionMode
    target_hosts: tuple[Host, ...]
    interpreter: str = "bash"
    arguments: tuple[str, ...] = ()
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def payload_bytes(self) -> bytes:
        if isinstance(self.payload, bytes):
            return self.payload
        return self.payload.encode("utf-8")

    @property
    def coordinator(self) -> Host | None:
        """The coordinator target, if exactly one is present."""
        coordinators = [h for h in self.target_hosts if h.role is HostRole.COORDINATOR]
        return coordinators[0] if len(coordinators) == 1 else None

    @property
    def workers(self) -> list[Host]:
        return [h for h in self.target_hosts if h.role is HostRole.WORKER]
