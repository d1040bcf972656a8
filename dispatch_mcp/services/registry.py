"""Host registry: the set of remote hosts jobs may target.

Reads are snapshots of an internal dict. Writes that change a host's
reachability go through a per-host lock so each host has a single
writer at a time. Reachability is advisory: the dispatcher re-checks
it before contacting a host.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING

from dispatch_mcp.models import Host
from dispatch_mcp.utils.ping import check_hosts_online

if TYPE_CHECKING:
    from dispatch_mcp.protocols import ProvisioningService

logger = logging.getLogger(__name__)


class HostRegistry:
    """Registry of known hosts and their reachability."""

    def __init__(self, hosts: list[Host] | None = None) -> None:
        self._hosts: dict[str, Host] = {}
        self._host_locks: dict[str, asyncio.Lock] = {}
        for host in hosts or ():
            self.register(host)

    def _lock_for(self, name: str) -> asyncio.Lock:
        # setdefault is atomic on the event loop thread
        return self._host_locks.setdefault(name, asyncio.Lock())

    def register(self, host: Host) -> Host:
        """Add or replace a host; registration always marks it reachable."""
        if not host.reachable:
            host = dataclasses.replace(host, reachable=True)
        previous = self._hosts.get(host.name)
        self._hosts[host.name] = host
        if previous is None:
            logger.debug("Registered host %s (%s, %s)", host.name, host.address, host.role.value)
        elif not previous.reachable:
            logger.info("Host %s re-registered and reachable again", host.name)
        return host

    def remove(self, name: str) -> bool:
        """Forget a host. Returns False if it was not registered."""
        removed = self._hosts.pop(name, None)
        self._host_locks.pop(name, None)
        if removed is not None:
            logger.info("Removed host %s from registry", name)
        return removed is not None

    def list(self) -> list[Host]:
        """All registered hosts, sorted by name."""
        return sorted(self._hosts.values(), key=lambda h: h.name)

    def reachable(self) -> list[Host]:
        """Hosts currently eligible for job targeting."""
        return [h for h in self.list() if h.reachable]

    def get(self, name: str) -> Host | None:
        return self._hosts.get(name)

    def is_reachable(self, name: str) -> bool:
        host = self._hosts.get(name)
        return host is not None and host.reachable

    async def mark_unreachable(self, name: str) -> None:
        """Mark a host unreachable. Unknown hosts are ignored, never raised."""
        async with self._lock_for(name):
            host = self._hosts.get(name)
            if host is None:
                logger.debug("Ignoring unreachable mark for unknown host %s", name)
                return
            if not host.reachable:
                return
            self._hosts[name] = dataclasses.replace(host, reachable=False)
            logger.warning("Host %s marked unreachable", name)

    async def refresh(self, timeout: float = 2.0) -> dict[str, bool]:
        """Probe every host's SSH port and mark silent ones unreachable.

        A host that answers is not re-marked reachable; only
        ``register`` does that.

        Returns:
            Dict of {host name: answered probe}
        """
        status = await check_hosts_online(self.list(), timeout=timeout)
        offline = [name for name, online in status.items() if not online]
        await asyncio.gather(*(self.mark_unreachable(name) for name in offline))
        logger.info(
            "Refreshed %d host(s): %d online, %d offline",
            len(status),
            len(status) - len(offline),
            len(offline),
        )
        return status

    def sync(self, provider: "ProvisioningService", group: str) -> list[Host]:
        """Mirror the provisioning service's view of ``group``.

        Registers every listed host and removes registered hosts the
        service no longer lists (their backing resource was deleted).

        Returns:
            The hosts listed by the provider
        """
        listed = list(provider.list(group))
        listed_names = {h.name for h in listed}

        for name in [n for n in self._hosts if n not in listed_names]:
            self.remove(name)
        for host in listed:
            self.register(host)

        logger.info("Synced group %r: %d host(s)", group, len(listed))
        return listed

    def __len__(self) -> int:
        return len(self._hosts)

    def __contains__(self, name: object) -> bool:
        return name in self._hosts
