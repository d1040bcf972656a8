"""Run result data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from dispatch_mcp.models.host import Host
from dispatch_mcp.models.job import ExecutionMode, JobState

if TYPE_CHECKING:
    from dispatch_mcp.protocols import CostEstimator


class FailureKind(str, Enum):
    """Why a host's run did not succeed."""

    CONNECTION = "connection"
    TRANSFER = "transfer"
    EXECUTION = "execution"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class RunResult:
    """Outcome of running a job's script on one host."""

    host: Host
    start_time: datetime
    end_time: datetime
    exit_status: int | None
    output: str = ""
    error: str = ""
    failure: FailureKind | None = None
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @property
    def duration(self) -> float:
        """Elapsed seconds between start and end."""
        return (self.end_time - self.start_time).total_seconds()


@dataclass
class JobReport:
    """Results collected for one script job.

    ``results`` holds finalized RunResults; ``aborted`` holds the hosts
    whose operation was cancelled before it finished.
    """

    job_id: str
    mode: ExecutionMode
    state: JobState
    results: list[RunResult] = field(default_factory=list)
    aborted: list[Host] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True when every targeted host finished successfully."""
        return (
            bool(self.results)
            and not self.aborted
            and all(r.succeeded for r in self.results)
        )

    @property
    def partial(self) -> bool:
        """True when some, but not all, targeted hosts succeeded."""
        ok = sum(1 for r in self.results if r.succeeded)
        return 0 < ok < len(self.results) + len(self.aborted)

    @property
    def failed_hosts(self) -> list[str]:
        return [r.host.name for r in self.results if not r.succeeded]

    def estimate_cost(self, estimator: "CostEstimator") -> float:
        """Sum the estimator's cost for each host over its run duration."""
        return sum(
            estimator.estimate(r.host, r.duration) for r in self.results
        )
