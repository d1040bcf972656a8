"""Script dispatcher: push a job's payload to hosts and run it.

Per-host failures are recorded as RunResults with a FailureKind and
never abort sibling hosts:

- connection failure -> CONNECTION, host marked unreachable
- payload transfer failure -> TRANSFER, execution skipped
- non-zero exit -> EXECUTION, exit status and output kept
- per-host timeout -> TIMEOUT
"""

import asyncio
import logging
import posixpath
import re
from typing import TYPE_CHECKING

from dispatch_mcp.models import ExecutionMode, FailureKind, Host, HostRole, RunResult, ScriptJob
from dispatch_mcp.services.interpreters import InterpreterHandler, InterpreterRegistry
from dispatch_mcp.services.recorder import RunRecorder, RunToken

if TYPE_CHECKING:
    from dispatch_mcp.protocols import RemoteTransport
    from dispatch_mcp.services.registry import HostRegistry

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]")

# Upper bound on removing a payload after a timeout or cancellation
CLEANUP_TIMEOUT = 10.0


class JobValidationError(ValueError):
    """The job cannot be dispatched as described."""


def validate_job(
    job: ScriptJob,
    registry: "HostRegistry",
    interpreters: InterpreterRegistry,
) -> InterpreterHandler:
    """Check a job against the registry and return its interpreter handler.

    Raises:
        JobValidationError: If targets are empty, duplicated, unknown,
            unreachable, or do not fit the execution mode
        UnknownInterpreterError: If the interpreter is not registered
    """
    hosts = job.target_hosts
    if not hosts:
        raise JobValidationError("Job has no target hosts")

    names = [h.name for h in hosts]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise JobValidationError(f"Duplicate target hosts: {', '.join(duplicates)}")

    unknown = [n for n in names if n not in registry]
    if unknown:
        raise JobValidationError(f"Unknown hosts: {', '.join(unknown)}")

    unreachable = [n for n in names if not registry.is_reachable(n)]
    if unreachable:
        raise JobValidationError(f"Hosts marked unreachable: {', '.join(unreachable)}")

    if job.mode is ExecutionMode.SINGLE and len(hosts) != 1:
        raise JobValidationError(
            f"Single mode targets exactly one host, got {len(hosts)}"
        )

    if job.mode is ExecutionMode.CLUSTERED:
        coordinators = [h.name for h in hosts if h.role is HostRole.COORDINATOR]
        if len(coordinators) != 1:
            raise JobValidationError(
                f"Clustered mode needs exactly one coordinator, got {len(coordinators)}"
                + (f" ({', '.join(coordinators)})" if coordinators else "")
            )

    return interpreters.resolve(job.interpreter)


class ScriptDispatcher:
    """Transfers a job's script to hosts and executes it.

    In clustered mode only the coordinator is contacted; it receives
    the worker addresses in ``DISPATCH_WORKERS`` and is responsible
    for fanning work out to them.
    """

    def __init__(
        self,
        registry: "HostRegistry",
        transport: "RemoteTransport",
        interpreters: InterpreterRegistry | None = None,
        *,
        recorder: RunRecorder | None = None,
        host_timeout: float = 300.0,
        remote_workdir: str = "/tmp",
        cleanup_remote: bool = True,
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.interpreters = interpreters or InterpreterRegistry.with_defaults()
        self.recorder = recorder or RunRecorder()
        self.host_timeout = host_timeout
        self.remote_workdir = remote_workdir
        self.cleanup_remote = cleanup_remote

    def validate(self, job: ScriptJob) -> InterpreterHandler:
        return validate_job(job, self.registry, self.interpreters)

    def targets(self, job: ScriptJob) -> list[Host]:
        """Hosts this dispatcher contacts directly for the job."""
        if job.mode is ExecutionMode.CLUSTERED:
            coordinator = job.coordinator
            if coordinator is None:
                raise JobValidationError("Clustered mode needs exactly one coordinator")
            return [coordinator]
        return list(job.target_hosts)

    async def dispatch(self, job: ScriptJob) -> list[RunResult]:
        """Run the job on every directly contacted host concurrently.

        Returns:
            One RunResult per contacted host, in target order
        """
        self.validate(job)
        targets = self.targets(job)
        logger.info(
            "Dispatching job=%s (%s, %s) to %d host(s)",
            job.job_id,
            job.mode.value,
            job.interpreter,
            len(targets),
        )
        results = await asyncio.gather(*(self.dispatch_host(job, h) for h in targets))
        return list(results)

    async def dispatch_host(self, job: ScriptJob, host: Host) -> RunResult:
        """Run the job on one host, bounded by the per-host timeout."""
        handler = self.interpreters.resolve(job.interpreter)
        token = self.recorder.begin(host)

        # Reachability may have changed since the job was validated
        if not self.registry.is_reachable(host.name):
            logger.warning("Skipping %s for job=%s: marked unreachable", host.name, job.job_id)
            return self.recorder.fail(
                token, FailureKind.CONNECTION, f"{host.name} is marked unreachable"
            )

        try:
            return await asyncio.wait_for(
                self._run_on_host(job, host, handler, token),
                timeout=self.host_timeout,
            )
        except TimeoutError:
            logger.warning(
                "Host %s timed out after %ss for job=%s",
                host.name,
                self.host_timeout,
                job.job_id,
            )
            return self.recorder.fail(
                token,
                FailureKind.TIMEOUT,
                f"Timed out after {self.host_timeout}s",
            )

    def remote_path(self, job: ScriptJob, host: Host, handler: InterpreterHandler) -> str:
        safe_name = _UNSAFE_NAME_RE.sub("_", host.name)
        return posixpath.join(
            self.remote_workdir,
            f"dispatch-{job.job_id}-{safe_name}{handler.suffix}",
        )

    def remote_env(self, job: ScriptJob, host: Host) -> dict[str, str]:
        """Environment exported to the remote script."""
        env = {
            "DISPATCH_JOB_ID": job.job_id,
            "DISPATCH_HOST": host.name,
            "DISPATCH_ROLE": host.role.value,
            "DISPATCH_MODE": job.mode.value,
        }
        if job.mode is ExecutionMode.CLUSTERED:
            env["DISPATCH_COORDINATOR"] = host.address
            env["DISPATCH_WORKERS"] = ",".join(w.address for w in job.workers)
        return env

    async def _run_on_host(
        self,
        job: ScriptJob,
        host: Host,
        handler: InterpreterHandler,
        token: RunToken,
    ) -> RunResult:
        try:
            channel = await self.transport.connect(host)
        except Exception as e:
            logger.error("Connection to %s failed for job=%s: %s", host.name, job.job_id, e)
            await self.registry.mark_unreachable(host.name)
            return self.recorder.fail(token, FailureKind.CONNECTION, str(e))

        remote_path = self.remote_path(job, host, handler)
        try:
            await self.transport.transfer(channel, job.payload_bytes, remote_path)
        except Exception as e:
            logger.error("Transfer to %s failed for job=%s: %s", host.name, job.job_id, e)
            return self.recorder.fail(token, FailureKind.TRANSFER, str(e))

        command = handler.build_command(remote_path, job.arguments)
        logger.debug("Running on %s: %s", host.name, command)
        try:
            result = await self.transport.run(channel, command, self.remote_env(job, host))
        except asyncio.CancelledError:
            # Timed out or cancelled mid-run: the payload is still on disk
            logger.debug("Removing %s on %s after interrupted run", remote_path, host.name)
            try:
                await asyncio.wait_for(
                    self._cleanup(channel, host, remote_path), timeout=CLEANUP_TIMEOUT
                )
            except TimeoutError:
                logger.warning("Timed out removing %s on %s", remote_path, host.name)
            raise
        except Exception as e:
            logger.error("Execution on %s failed for job=%s: %s", host.name, job.job_id, e)
            await self._cleanup(channel, host, remote_path)
            return self.recorder.fail(token, FailureKind.EXECUTION, str(e))

        await self._cleanup(channel, host, remote_path)

        if result.returncode != 0:
            logger.warning(
                "Host %s finished job=%s with exit=%d",
                host.name,
                job.job_id,
                result.returncode,
            )
            return self.recorder.fail(
                token,
                FailureKind.EXECUTION,
                f"Command exited with code {result.returncode}",
                status=result.returncode,
                output=result.output,
                error=result.error,
            )

        run = self.recorder.end(token, result.returncode, result.output, error=result.error)
        logger.info(
            "Host %s completed job=%s exit=0 in %.2fs",
            host.name,
            job.job_id,
            run.duration,
        )
        return run

    async def _cleanup(self, channel: object, host: Host, remote_path: str) -> None:
        if not self.cleanup_remote:
            return
        try:
            await self.transport.remove(channel, remote_path)
        except Exception as e:
            logger.warning("Could not remove %s on %s: %s", remote_path, host.name, e)
