"""Dependency injection container for Dispatch MCP.

One container is scoped to an orchestration session and passed
explicitly to the operations that need it; nothing is kept in
module-level globals.
"""

from dataclasses import dataclass, field

from dispatch_mcp.config import Config
from dispatch_mcp.services.dispatcher import ScriptDispatcher
from dispatch_mcp.services.interpreters import InterpreterRegistry
from dispatch_mcp.services.pool import ConnectionPool
from dispatch_mcp.services.provisioning import SSHConfigProvisioner
from dispatch_mcp.services.registry import HostRegistry
from dispatch_mcp.services.transport import SSHTransport


@dataclass
class Dependencies:
    """Container for Dispatch MCP dependencies.

    Example:
        deps = Dependencies.create()
        deps.load_hosts()
        report = await run_job(deps.dispatcher, job)
        await deps.cleanup()
    """

    config: Config
    pool: ConnectionPool
    registry: HostRegistry = field(default_factory=HostRegistry)
    interpreters: InterpreterRegistry = field(
        default_factory=InterpreterRegistry.with_defaults
    )

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from the environment."""
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(cls, config: Config) -> "Dependencies":
        """Create dependencies with a pool initialized from config."""
        pool = ConnectionPool(
            idle_timeout=config.idle_timeout,
            max_size=config.max_pool_size,
            known_hosts=config.known_hosts_path,
            strict_host_key_checking=config.strict_host_key_checking,
        )
        return cls(config=config, pool=pool)

    @property
    def transport(self) -> SSHTransport:
        return SSHTransport(self.pool, self.config.retry_policy)

    @property
    def dispatcher(self) -> ScriptDispatcher:
        """A dispatcher wired to this session's registry and transport."""
        settings = self.config.settings
        return ScriptDispatcher(
            self.registry,
            self.transport,
            self.interpreters,
            host_timeout=settings.host_timeout,
            remote_workdir=settings.remote_workdir,
            cleanup_remote=settings.cleanup_remote,
        )

    def load_hosts(self, group: str | None = None) -> int:
        """Sync the registry with the SSH config for a host group.

        Returns:
            Number of hosts in the group
        """
        provider = SSHConfigProvisioner(self.config)
        return len(self.registry.sync(provider, group or self.config.settings.group))

    async def cleanup(self) -> None:
        """Clean up resources (close all connections)."""
        await self.pool.close_all()
