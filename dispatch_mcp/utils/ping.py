"""Host connectivity checking utilities."""

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dispatch_mcp.models import Host


async def check_host_online(hostname: str, port: int, timeout: float = 2.0) -> bool:
    """Check if a host accepts TCP connections on the given port.

    Args:
        hostname: Host to check.
        port: Port to connect to (usually SSH port).
        timeout: Connection timeout in seconds.

    Returns:
        True if host is reachable, False otherwise.
    """
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port),
            timeout=timeout,
        )
        writer.close()
        await writer.wait_closed()
        return True
    except (TimeoutError, OSError):
        return False


async def check_hosts_online(
    hosts: Iterable["Host"],
    timeout: float = 2.0,
) -> dict[str, bool]:
    """Probe the SSH port of several hosts concurrently.

    Args:
        hosts: Hosts to probe.
        timeout: Connection timeout per host.

    Returns:
        Dict of {host name: is_online}.
    """
    hosts = list(hosts)
    if not hosts:
        return {}

    results = await asyncio.gather(
        *(
            check_host_online(h.connection_hostname, h.connection_port, timeout)
            for h in hosts
        )
    )
    return {h.name: online for h, online in zip(hosts, results)}
