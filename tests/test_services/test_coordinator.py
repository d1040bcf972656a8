"""Tests for the execution coordinator."""

import asyncio

import pytest

from dispatch_mcp.models import (
    ExecutionMode,
    FailureKind,
    Host,
    JobReport,
    JobState,
    RunResult,
    ScriptJob,
)
from dispatch_mcp.services.coordinator import ExecutionCoordinator, run_job
from dispatch_mcp.services.dispatcher import JobValidationError, ScriptDispatcher
from dispatch_mcp.services.registry import HostRegistry
from tests.fakes import FakeTransport


@pytest.fixture
def dispatcher(registry: HostRegistry, fake_transport: FakeTransport) -> ScriptDispatcher:
    return ScriptDispatcher(registry, fake_transport, host_timeout=5)


def broadcast(hosts: list[Host]) -> ScriptJob:
    return ScriptJob(payload="hostname", mode=ExecutionMode.BROADCAST, target_hosts=tuple(hosts))


def by_host(report: JobReport) -> dict[str, RunResult]:
    return {r.host.name: r for r in report.results}


async def wait_until_finished(transport: FakeTransport, name: str) -> None:
    while name not in transport.finished:
        await asyncio.sleep(0)


class TestSubmit:
    """Tests for ExecutionCoordinator.submit."""

    @pytest.mark.asyncio
    async def test_single_host_exit_zero(
        self, dispatcher: ScriptDispatcher, hosts: list[Host]
    ) -> None:
        coordinator = ExecutionCoordinator(dispatcher)
        job = ScriptJob(payload="echo ok", mode=ExecutionMode.SINGLE, target_hosts=(hosts[1],))

        report = await coordinator.submit(job)

        assert coordinator.state is JobState.DONE
        assert report.state is JobState.DONE
        assert report.job_id == job.job_id
        assert len(report.results) == 1
        result = report.results[0]
        assert result.exit_status == 0
        assert result.succeeded
        assert result.start_time <= result.end_time
        assert report.succeeded

    @pytest.mark.asyncio
    async def test_clustered_contacts_only_coordinator(
        self,
        dispatcher: ScriptDispatcher,
        fake_transport: FakeTransport,
        hosts: list[Host],
    ) -> None:
        job = ScriptJob(
            payload="parLapply(cl, 1:10, f)",
            mode=ExecutionMode.CLUSTERED,
            target_hosts=tuple(hosts),
            interpreter="rscript",
        )

        report = await run_job(dispatcher, job)

        assert fake_transport.connected == ["dsvm1"]
        assert [r.host.name for r in report.results] == ["dsvm1"]
        assert report.aborted == []
        assert report.state is JobState.DONE

    @pytest.mark.asyncio
    async def test_broadcast_with_connection_failure_is_partial(
        self,
        dispatcher: ScriptDispatcher,
        fake_transport: FakeTransport,
        registry: HostRegistry,
        hosts: list[Host],
    ) -> None:
        """One unreachable host does not abort its siblings."""
        fake_transport.connect_errors["dsvm2"] = ConnectionRefusedError("refused")

        report = await run_job(dispatcher, broadcast(hosts))

        assert len(report.results) == 3
        assert report.partial
        assert not report.succeeded
        assert report.failed_hosts == ["dsvm2"]
        results = by_host(report)
        assert results["dsvm2"].failure is FailureKind.CONNECTION
        assert results["dsvm1"].succeeded
        assert results["dsvm3"].succeeded
        assert not registry.is_reachable("dsvm2")

    @pytest.mark.asyncio
    async def test_timeout_is_recorded_per_host(
        self,
        registry: HostRegistry,
        fake_transport: FakeTransport,
        hosts: list[Host],
    ) -> None:
        fake_transport.delays["dsvm3"] = 5
        dispatcher = ScriptDispatcher(registry, fake_transport, host_timeout=0.05)

        report = await run_job(dispatcher, broadcast(hosts))

        results = by_host(report)
        assert results["dsvm3"].failure is FailureKind.TIMEOUT
        assert results["dsvm1"].succeeded
        assert report.partial

    @pytest.mark.asyncio
    async def test_unreachable_hosts_are_rejected(
        self,
        dispatcher: ScriptDispatcher,
        fake_transport: FakeTransport,
        registry: HostRegistry,
        hosts: list[Host],
    ) -> None:
        await registry.mark_unreachable("dsvm3")
        coordinator = ExecutionCoordinator(dispatcher)

        with pytest.raises(JobValidationError, match="dsvm3"):
            await coordinator.submit(broadcast(hosts))

        assert coordinator.state is JobState.IDLE
        assert fake_transport.connected == []

    @pytest.mark.asyncio
    async def test_not_idle_raises(self, dispatcher: ScriptDispatcher, hosts: list[Host]) -> None:
        coordinator = ExecutionCoordinator(dispatcher)
        await coordinator.submit(broadcast(hosts))

        with pytest.raises(RuntimeError, match="not idle"):
            await coordinator.submit(broadcast(hosts))

    @pytest.mark.asyncio
    async def test_reset_allows_reuse(self, dispatcher: ScriptDispatcher, hosts: list[Host]) -> None:
        coordinator = ExecutionCoordinator(dispatcher)
        await coordinator.submit(broadcast(hosts))

        coordinator.reset()
        report = await coordinator.submit(broadcast(hosts))

        assert coordinator.state is JobState.DONE
        assert len(report.results) == 3


class TestCancel:
    """Tests for cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_keeps_finished_results(
        self,
        dispatcher: ScriptDispatcher,
        fake_transport: FakeTransport,
        hosts: list[Host],
    ) -> None:
        """Cancelling after 1 of 3 hosts finished yields 1 result and 2 aborted."""
        fake_transport.delays["dsvm2"] = 10
        fake_transport.delays["dsvm3"] = 10
        coordinator = ExecutionCoordinator(dispatcher)

        task = asyncio.create_task(coordinator.submit(broadcast(hosts)))
        await asyncio.wait_for(wait_until_finished(fake_transport, "dsvm1"), timeout=2)
        # Let the finished host's task complete
        await asyncio.sleep(0.01)

        assert coordinator.state is JobState.DISPATCHING
        assert coordinator.cancel() == 2

        report = await asyncio.wait_for(task, timeout=2)

        assert coordinator.state is JobState.CANCELLED
        assert report.state is JobState.CANCELLED
        assert [r.host.name for r in report.results] == ["dsvm1"]
        assert report.results[0].succeeded
        assert sorted(h.name for h in report.aborted) == ["dsvm2", "dsvm3"]
        assert report.partial

    @pytest.mark.asyncio
    async def test_cancel_when_idle_is_noop(self, dispatcher: ScriptDispatcher) -> None:
        coordinator = ExecutionCoordinator(dispatcher)

        assert coordinator.cancel() == 0
        assert coordinator.state is JobState.IDLE

    @pytest.mark.asyncio
    async def test_caller_cancellation_cancels_hosts(
        self,
        dispatcher: ScriptDispatcher,
        fake_transport: FakeTransport,
        hosts: list[Host],
    ) -> None:
        for host in hosts:
            fake_transport.delays[host.name] = 10
        coordinator = ExecutionCoordinator(dispatcher)

        task = asyncio.create_task(coordinator.submit(broadcast(hosts)))
        while len(fake_transport.commands) < 3:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert coordinator.state is JobState.CANCELLED
        assert fake_transport.finished == []

    @pytest.mark.asyncio
    async def test_reset_while_dispatching_raises(
        self,
        dispatcher: ScriptDispatcher,
        fake_transport: FakeTransport,
        hosts: list[Host],
    ) -> None:
        fake_transport.delays["dsvm1"] = 10
        coordinator = ExecutionCoordinator(dispatcher)
        job = ScriptJob(payload="x", mode=ExecutionMode.SINGLE, target_hosts=(hosts[0],))

        task = asyncio.create_task(coordinator.submit(job))
        while not fake_transport.commands:
            await asyncio.sleep(0)

        with pytest.raises(RuntimeError, match="dispatching"):
            coordinator.reset()

        coordinator.cancel()
        report = await task
        assert [h.name for h in report.aborted] == ["dsvm1"]
