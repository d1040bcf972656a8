"""Provisioning adapter backed by the SSH config file."""

import logging
from fnmatch import fnmatch
from typing import TYPE_CHECKING

from dispatch_mcp.models import Host

if TYPE_CHECKING:
    from dispatch_mcp.config import Config

logger = logging.getLogger(__name__)


class SSHConfigProvisioner:
    """Lists hosts from ~/.ssh/config, grouped by fnmatch pattern.

    ``list("dsvm-*")`` returns every configured host whose name matches,
    the way a cloud resource group scopes a set of machines. Creating
    and deleting machines happens outside this process; editing the
    SSH config is how they appear and disappear here.
    """

    def __init__(self, config: "Config") -> None:
        self.config = config

    def list(self, group: str) -> list[Host]:
        hosts = [
            host
            for name, host in sorted(self.config.get_hosts().items())
            if fnmatch(name, group)
        ]
        logger.debug("Group %r matched %d host(s)", group, len(hosts))
        return hosts
