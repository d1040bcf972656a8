"""Tests for the host registry."""

import asyncio
import dataclasses
from unittest.mock import AsyncMock, patch

import pytest

from dispatch_mcp.models import Host
from dispatch_mcp.services.registry import HostRegistry


class StaticProvider:
    """Provisioning service returning a fixed list of hosts."""

    def __init__(self, hosts: list[Host]) -> None:
        self.hosts = hosts
        self.groups: list[str] = []

    def list(self, group: str) -> list[Host]:
        self.groups.append(group)
        return self.hosts


class TestHostRegistry:
    """Tests for HostRegistry."""

    def test_register_and_list(self, registry: HostRegistry) -> None:
        assert [h.name for h in registry.list()] == ["dsvm1", "dsvm2", "dsvm3"]
        assert len(registry) == 3
        assert "dsvm2" in registry
        assert registry.get("dsvm2").address == "10.0.0.2"  # type: ignore[union-attr]

    def test_register_marks_reachable(self) -> None:
        registry = HostRegistry()

        stored = registry.register(Host(name="a", address="a", reachable=False))

        assert stored.reachable
        assert registry.is_reachable("a")

    def test_remove(self, registry: HostRegistry) -> None:
        assert registry.remove("dsvm2") is True
        assert registry.remove("dsvm2") is False
        assert "dsvm2" not in registry

    def test_unknown_host_is_not_reachable(self, registry: HostRegistry) -> None:
        assert registry.get("nope") is None
        assert not registry.is_reachable("nope")

    @pytest.mark.asyncio
    async def test_mark_unreachable(self, registry: HostRegistry) -> None:
        await registry.mark_unreachable("dsvm2")

        assert not registry.is_reachable("dsvm2")
        assert [h.name for h in registry.reachable()] == ["dsvm1", "dsvm3"]
        # Still registered
        assert "dsvm2" in registry

    @pytest.mark.asyncio
    async def test_mark_unreachable_unknown_host_is_ignored(
        self, registry: HostRegistry
    ) -> None:
        await registry.mark_unreachable("ghost")

        assert "ghost" not in registry
        assert len(registry.reachable()) == 3

    @pytest.mark.asyncio
    async def test_concurrent_marks(self, registry: HostRegistry) -> None:
        await asyncio.gather(*(registry.mark_unreachable("dsvm1") for _ in range(10)))

        assert not registry.is_reachable("dsvm1")

    @pytest.mark.asyncio
    async def test_register_restores_reachability(self, registry: HostRegistry) -> None:
        await registry.mark_unreachable("dsvm1")

        registry.register(registry.get("dsvm1"))  # type: ignore[arg-type]

        assert registry.is_reachable("dsvm1")

    @pytest.mark.asyncio
    async def test_refresh_marks_offline_hosts(self, registry: HostRegistry) -> None:
        with patch(
            "dispatch_mcp.services.registry.check_hosts_online",
            new_callable=AsyncMock,
        ) as mock_check:
            mock_check.return_value = {"dsvm1": True, "dsvm2": False, "dsvm3": True}
            status = await registry.refresh(timeout=0.5)

        assert status["dsvm2"] is False
        assert not registry.is_reachable("dsvm2")
        assert registry.is_reachable("dsvm1")
        assert mock_check.call_args.kwargs["timeout"] == 0.5

    @pytest.mark.asyncio
    async def test_refresh_does_not_revive_hosts(self, registry: HostRegistry) -> None:
        await registry.mark_unreachable("dsvm3")

        with patch(
            "dispatch_mcp.services.registry.check_hosts_online",
            new_callable=AsyncMock,
            return_value={"dsvm1": True, "dsvm2": True, "dsvm3": True},
        ):
            await registry.refresh()

        assert not registry.is_reachable("dsvm3")

    def test_sync_adds_and_removes(self, registry: HostRegistry, hosts: list[Host]) -> None:
        new_host = Host(name="dsvm4", address="10.0.0.4")
        provider = StaticProvider([hosts[0], new_host])

        listed = registry.sync(provider, "dsvm*")

        assert provider.groups == ["dsvm*"]
        assert [h.name for h in listed] == ["dsvm1", "dsvm4"]
        assert [h.name for h in registry.list()] == ["dsvm1", "dsvm4"]

    def test_sync_updates_changed_hosts(self, registry: HostRegistry, hosts: list[Host]) -> None:
        moved = dataclasses.replace(hosts[1], address="10.9.9.9")

        registry.sync(StaticProvider([moved]), "*")

        assert registry.get("dsvm2").address == "10.9.9.9"  # type: ignore[union-attr]
        assert len(registry) == 1
