"""SSH config file parser.

Reads ~/.ssh/config and turns host definitions into ``Host`` records,
with allowlist/blocklist filtering and coordinator role assignment.
"""

import logging
import os
import re
from fnmatch import fnmatch
from pathlib import Path

from dispatch_mcp.models import Host, HostRole
from dispatch_mcp.utils.hostname import is_localhost_target

logger = logging.getLogger(__name__)

_HOST_RE = re.compile(r"^Host\s+(.+)$", re.IGNORECASE)
_MATCH_RE = re.compile(r"^Match\s", re.IGNORECASE)
_KV_RE = re.compile(r"^(\w+)\s+(.+)$")


def _is_pattern(token: str) -> bool:
    return token.startswith("!") or "*" in token or "?" in token


def _block_applies(patterns: list[str], name: str) -> bool:
    """Match a name against a Host line; a matching negation excludes it."""
    matched = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if fnmatch(name, pattern[1:]):
                return False
        elif fnmatch(name, pattern):
            matched = True
    return matched


class SSHConfigParser:
    """Parser for SSH config files.

    Reads SSH config format and extracts host definitions.
    Supports allowlist/blocklist filtering (fnmatch patterns).
    """

    def __init__(
        self,
        config_path: Path | str | None = None,
        allowlist: list[str] | None = None,
        blocklist: list[str] | None = None,
        coordinator: str | None = None,
    ):
        """Initialize SSH config parser.

        Args:
            config_path: Path to SSH config file (default: ~/.ssh/config)
            allowlist: Only include hosts matching these patterns (if set)
            blocklist: Exclude hosts matching these patterns
            coordinator: Name of the host that gets the Coordinator role
        """
        if config_path is None:
            config_path = Path.home() / ".ssh" / "config"

        self.config_path = Path(config_path)
        self.allowlist = list(allowlist) if allowlist else None
        self.blocklist = list(blocklist) if blocklist else []
        self.coordinator = coordinator

    def parse(self) -> dict[str, Host]:
        """Parse SSH config and return host definitions.

        Options are resolved the way ssh(1) does: every ``Host`` block
        whose patterns match a name contributes, and the first value
        obtained for an option wins. Pattern-only blocks never become
        hosts themselves.

        Returns:
            Dictionary mapping host name to Host objects
        """
        if not self.config_path.exists():
            logger.warning("SSH config not found: %s", self.config_path)
            return {}

        try:
            content = self.config_path.read_text()
            logger.debug("Reading SSH config from %s", self.config_path)
        except OSError as e:
            logger.warning("Cannot read SSH config %s: %s", self.config_path, e)
            return {}

        blocks: list[tuple[list[str], dict[str, str]]] = []
        names: list[str] = []
        current: dict[str, str] | None = None

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            host_match = _HOST_RE.match(line)
            if host_match:
                patterns = host_match.group(1).split()
                current = {}
                blocks.append((patterns, current))
                for pattern in patterns:
                    if not _is_pattern(pattern) and pattern not in names:
                        names.append(pattern)
                continue

            if _MATCH_RE.match(line):
                # Match blocks are not evaluated
                current = None
                continue

            kv_match = _KV_RE.match(line)
            if kv_match and current is not None:
                key = kv_match.group(1).lower()
                value = kv_match.group(2).strip()
                if key == "identityfile":
                    value = os.path.expanduser(value)
                current.setdefault(key, value)

        hosts: dict[str, Host] = {}
        for name in names:
            data: dict[str, str] = {}
            for patterns, options in blocks:
                if _block_applies(patterns, name):
                    for key, value in options.items():
                        data.setdefault(key, value)
            self._add_host(hosts, name, data)

        if self.coordinator and self.coordinator not in hosts:
            logger.warning(
                "Coordinator host %s not found in %s", self.coordinator, self.config_path
            )

        logger.info("Parsed %d hosts from %s", len(hosts), self.config_path)
        return hosts

    def _add_host(
        self,
        hosts: dict[str, Host],
        name: str,
        data: dict[str, str],
    ) -> None:
        if not data.get("hostname"):
            return
        if not self._is_host_allowed(name):
            logger.debug("Host %s filtered out by allowlist/blocklist", name)
            return

        try:
            port = int(data.get("port", "22"))
        except ValueError:
            logger.warning("Invalid port for %s: %s, using 22", name, data.get("port"))
            port = 22

        role = HostRole.COORDINATOR if name == self.coordinator else HostRole.WORKER
        hosts[name] = Host(
            name=name,
            address=data["hostname"],
            role=role,
            user=data.get("user", "root"),
            port=port,
            identity_file=data.get("identityfile"),
            is_localhost=is_localhost_target(name),
        )

    def _is_host_allowed(self, name: str) -> bool:
        """Check if host passes allowlist/blocklist filters."""
        # Allowlist takes precedence
        if self.allowlist:
            return any(fnmatch(name, pattern) for pattern in self.allowlist)

        if self.blocklist:
            return not any(fnmatch(name, pattern) for pattern in self.blocklist)

        return True
