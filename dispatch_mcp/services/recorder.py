"""Run recorder: timestamps each host's run and finalizes RunResults."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from dispatch_mcp.models import FailureKind, Host, RunResult


@dataclass
class RunToken:
    """Handle for a recording in progress.

    Each token owns its timing, so recordings for different hosts
    never share mutable state.
    """

    host: Host
    started_at: datetime
    _started_monotonic: float = field(repr=False)
    finalized: bool = field(default=False, repr=False)

    def elapsed(self) -> float:
        return time.monotonic() - self._started_monotonic


class RunRecorder:
    """Creates tokens at the start of a host run and RunResults at its end.

    End times are the start wall-clock time plus elapsed monotonic time,
    so ``start_time <= end_time`` holds even if the system clock jumps.
    """

    def begin(self, host: Host) -> RunToken:
        return RunToken(
            host=host,
            started_at=datetime.now(timezone.utc),
            _started_monotonic=time.monotonic(),
        )

    def end(
        self,
        token: RunToken,
        status: int | None,
        output: str = "",
        *,
        error: str = "",
        failure: FailureKind | None = None,
        message: str | None = None,
    ) -> RunResult:
        """Finalize a recording.

        Raises:
            ValueError: If the token was already finalized
        """
        if token.finalized:
            raise ValueError(f"Run for {token.host.name} already finalized")
        token.finalized = True

        elapsed = max(token.elapsed(), 0.0)
        return RunResult(
            host=token.host,
            start_time=token.started_at,
            end_time=token.started_at + timedelta(seconds=elapsed),
            exit_status=status,
            output=output,
            error=error,
            failure=failure,
            message=message,
        )

    def fail(
        self,
        token: RunToken,
        failure: FailureKind,
        message: str,
        *,
        status: int | None = None,
        output: str = "",
        error: str = "",
    ) -> RunResult:
        """Finalize a recording as a failure of the given kind."""
        return self.end(
            token,
            status,
            output,
            error=error,
            failure=failure,
            message=message,
        )
