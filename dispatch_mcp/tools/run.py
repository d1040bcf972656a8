"""run_script tool: run a script on registered hosts and report results."""

import dataclasses
import logging
from typing import TYPE_CHECKING

from dispatch_mcp.models import ExecutionMode, Host, HostRole, JobReport, ScriptJob
from dispatch_mcp.services.coordinator import run_job
from dispatch_mcp.services.dispatcher import JobValidationError

if TYPE_CHECKING:
    from dispatch_mcp.dependencies import Dependencies
    from dispatch_mcp.services.registry import HostRegistry

logger = logging.getLogger(__name__)

_OUTPUT_TAIL_LINES = 40


def select_targets(
    registry: "HostRegistry",
    names: list[str] | None,
    mode: ExecutionMode,
    coordinator: str | None = None,
) -> tuple[Host, ...]:
    """Resolve host names to the job's target hosts.

    With names omitted, single mode requires exactly one reachable host and
    the other modes target every reachable host. ``coordinator`` gives
    that host the Coordinator role for this job and every other target
    the Worker role.

    Raises:
        JobValidationError: If a name is unknown or no host can be chosen
    """
    if names is not None:
        if not names:
            raise JobValidationError("No target hosts given")
        unknown = [n for n in names if registry.get(n) is None]
        if unknown:
            raise JobValidationError(f"Unknown hosts: {', '.join(unknown)}")
        hosts = [h for n in names if (h := registry.get(n)) is not None]
    else:
        hosts = registry.reachable()
        if mode is ExecutionMode.SINGLE and len(hosts) != 1:
            raise JobValidationError(
                f"Single mode needs a host name ({len(hosts)} reachable hosts)"
            )
    if not hosts:
        raise JobValidationError("No reachable hosts")

    if coordinator is not None:
        if coordinator not in {h.name for h in hosts}:
            raise JobValidationError(f"Coordinator {coordinator} is not a target host")
        hosts = [
            dataclasses.replace(
                h,
                role=HostRole.COORDINATOR if h.name == coordinator else HostRole.WORKER,
            )
            for h in hosts
        ]
    return tuple(hosts)


def format_report(report: JobReport) -> str:
    """Format a job report for display, one section per host."""
    lines = [f"Job {report.job_id} ({report.mode.value}) - {report.state.value}", ""]

    for r in sorted(report.results, key=lambda r: r.host.name):
        status = "ok" if r.succeeded else f"FAILED: {r.failure.value}"  # type: ignore[union-attr]
        header = f"═══ {r.host.name} [{r.host.role.value}] {status} "
        lines.append(header + "═" * max(60 - len(header), 3))
        exit_text = "-" if r.exit_status is None else str(r.exit_status)
        lines.append(
            f"started {r.start_time.isoformat(timespec='seconds')}  "
            f"duration {r.duration:.2f}s  exit {exit_text}"
        )
        if r.message and not r.succeeded:
            lines.append(f"Error: {r.message}")
        if r.output:
            output_lines = r.output.rstrip("\n").splitlines()
            if len(output_lines) > _OUTPUT_TAIL_LINES:
                skipped = len(output_lines) - _OUTPUT_TAIL_LINES
                lines.append(f"... ({skipped} lines omitted)")
                output_lines = output_lines[-_OUTPUT_TAIL_LINES:]
            lines.extend(output_lines)
        if r.error:
            lines.append("---")
            lines.append("Errors:")
            lines.extend(r.error.rstrip("\n").splitlines())
        lines.append("")

    for host in sorted(report.aborted, key=lambda h: h.name):
        lines.append(f"═══ {host.name} [{host.role.value}] ABORTED")
        lines.append("")

    ok = sum(1 for r in report.results if r.succeeded)
    total = len(report.results) + len(report.aborted)
    summary = f"─── {ok}/{total} hosts succeeded"
    if report.partial:
        summary += " (partial)"
    lines.append(summary + " ───")
    return "\n".join(lines)


async def run_script(
    deps: "Dependencies",
    script: str,
    hosts: list[str] | None = None,
    mode: str = "single",
    interpreter: str = "bash",
    coordinator: str | None = None,
    arguments: list[str] | None = None,
    timeout: int | None = None,
) -> str:
    """Run a script on remote hosts and return a formatted report.

    Args:
        deps: Session dependencies
        script: Script source to upload and execute
        hosts: Host names to target (default: all reachable hosts)
        mode: "single", "broadcast" or "clustered"
        interpreter: "bash", "sh", "python", "rscript" or a registered name
        coordinator: Host that coordinates a clustered run
        arguments: Extra arguments passed to the script
        timeout: Per-host timeout in seconds (default: DISPATCH_HOST_TIMEOUT)

    Examples:
        run_script(script="nproc", hosts=["dsvm1"])
        run_script(script=r_code, mode="broadcast", interpreter="rscript")
        run_script(script=r_code, mode="clustered", coordinator="dsvm1")
    """
    try:
        exec_mode = ExecutionMode(mode.lower())
    except ValueError:
        modes = ", ".join(m.value for m in ExecutionMode)
        return f"Error: Unknown mode {mode!r} (expected one of: {modes})"

    if timeout is not None and timeout <= 0:
        return "Error: timeout must be positive"

    dispatcher = deps.dispatcher
    if timeout is not None:
        dispatcher.host_timeout = timeout

    try:
        job = ScriptJob(
            payload=script,
            mode=exec_mode,
            target_hosts=select_targets(deps.registry, hosts, exec_mode, coordinator),
            interpreter=interpreter,
            arguments=tuple(arguments or ()),
        )
        report = await run_job(dispatcher, job)
    except ValueError as e:
        # JobValidationError and UnknownInterpreterError
        logger.warning("Rejected run_script request: %s", e)
        return f"Error: {e}"

    return format_report(report)
