"""Hosts resource for listing registered hosts."""

from typing import TYPE_CHECKING

from dispatch_mcp.utils.ping import check_hosts_online

if TYPE_CHECKING:
    from dispatch_mcp.dependencies import Dependencies


async def list_hosts_resource(deps: "Dependencies") -> str:
    """List registered hosts with role, registry state and live TCP probe.

    The probe result is informational; it does not change the registry.
    """
    hosts = deps.registry.list()

    if not hosts:
        return "No hosts registered."

    online_status = await check_hosts_online(hosts, timeout=2.0)

    lines = ["Registered Hosts", "=" * 40, ""]

    for host in hosts:
        online = online_status.get(host.name, False)
        status_icon = "✓" if online else "✗"
        registry_state = "reachable" if host.reachable else "unreachable"

        lines.append(
            f"[{status_icon}] {host.name} ({host.role.value}, {registry_state})"
        )
        lines.append(f"    SSH:      {host.user}@{host.address}:{host.port}")
        lines.append(f"    Probe:    {'online' if online else 'offline'}")
        lines.append("")

    coordinators = [h.name for h in hosts if h.is_coordinator]
    lines.append(f"Coordinator: {', '.join(coordinators) if coordinators else '(none)'}")
    lines.append(f"Interpreters: {', '.join(deps.interpreters.names)}")
    for name in deps.interpreters.names:
        handler = deps.interpreters.resolve(name)
        lines.append(f"    {name}: {handler.get_description()}")

    return "\n".join(lines)
