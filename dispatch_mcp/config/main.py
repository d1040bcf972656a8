"""Application configuration.

Delegates to specialized components:
- SSHConfigParser: Reads ~/.ssh/config
- HostKeyVerifier: Manages known_hosts
- Settings: Environment variables
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dispatch_mcp.config.host_keys import HostKeyVerifier
from dispatch_mcp.config.parser import SSHConfigParser
from dispatch_mcp.config.settings import Settings
from dispatch_mcp.models import Host, RetryPolicy

logger = logging.getLogger(__name__)


def _split_list(value: str) -> list[str] | None:
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


@dataclass
class Config:
    """Application configuration.

    Aggregates settings from SSH config, known_hosts, and environment.
    One instance is scoped to an orchestration session and passed
    explicitly to the components that need it.
    """

    settings: Settings
    parser: SSHConfigParser
    host_keys: HostKeyVerifier
    _hosts_cache: dict[str, Host] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized
        """
        return cls.from_ssh_config(
            ssh_config_path=os.getenv("DISPATCH_SSH_CONFIG") or None,
            allowlist=_split_list(os.getenv("DISPATCH_ALLOWLIST", "")),
            blocklist=_split_list(os.getenv("DISPATCH_BLOCKLIST", "")),
            known_hosts_path=os.getenv("DISPATCH_KNOWN_HOSTS"),
            strict_host_keys=cls._get_bool_env("DISPATCH_STRICT_HOST_KEY_CHECKING", True),
        )

    @classmethod
    def from_ssh_config(
        cls,
        ssh_config_path: Path | str | None = None,
        allowlist: list[str] | None = None,
        blocklist: list[str] | None = None,
        coordinator: str | None = None,
        *,
        known_hosts_path: str | None = None,
        strict_host_keys: bool = False,
    ) -> "Config":
        """Create config for an explicit SSH config file.

        Host key verification is not strict unless requested, which
        suits scripted sessions and tests.

        Args:
            ssh_config_path: SSH config file (default: ~/.ssh/config)
            allowlist: Only include hosts matching these patterns
            blocklist: Exclude hosts matching these patterns
            coordinator: Overrides DISPATCH_COORDINATOR
            known_hosts_path: known_hosts file or 'none'
            strict_host_keys: Reject unknown host keys
        """
        settings = Settings.from_env()
        if coordinator is not None:
            settings.coordinator = coordinator
        parser = SSHConfigParser(
            config_path=ssh_config_path,
            allowlist=allowlist,
            blocklist=blocklist,
            coordinator=settings.coordinator,
        )
        host_keys = HostKeyVerifier(
            known_hosts_path=known_hosts_path,
            strict_checking=strict_host_keys,
        )
        return cls(settings=settings, parser=parser, host_keys=host_keys)

    @staticmethod
    def _get_bool_env(key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() != "false"

    def get_hosts(self) -> dict[str, Host]:
        """Get SSH hosts from config.

        Lazy loads and caches hosts on first call.
        """
        if not self._hosts_cache:
            self._hosts_cache = self.parser.parse()
        return self._hosts_cache

    def get_host(self, name: str) -> Host | None:
        return self.get_hosts().get(name)

    @property
    def retry_policy(self) -> RetryPolicy:
        """Connection retry policy derived from settings."""
        return RetryPolicy(
            max_attempts=self.settings.connect_attempts,
            backoff=self.settings.connect_backoff,
        )

    # Delegate to settings for convenience
    @property
    def host_timeout(self) -> int:
        """Per-host operation timeout in seconds."""
        return self.settings.host_timeout

    @property
    def idle_timeout(self) -> int:
        """Connection idle timeout in seconds."""
        return self.settings.idle_timeout

    @property
    def max_pool_size(self) -> int:
        return self.settings.max_pool_size

    @property
    def transport(self) -> str:
        """Transport type (http or stdio)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        return self.settings.http_port

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()

    @property
    def strict_host_key_checking(self) -> bool:
        return self.host_keys.strict_checking
