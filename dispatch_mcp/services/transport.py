"""SSH/SFTP remote transport used by the script dispatcher."""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

import asyncssh

from dispatch_mcp.models import CommandResult, RetryPolicy
from dispatch_mcp.services.connection import get_connection_with_retry
from dispatch_mcp.utils.shell import export_prefix, quote_path

if TYPE_CHECKING:
    from dispatch_mcp.models import Host
    from dispatch_mcp.services.pool import ConnectionPool

logger = logging.getLogger(__name__)


class TransferError(Exception):
    """Payload could not be written to the remote host."""

    def __init__(self, remote_path: str, original_error: Exception):
        self.remote_path = remote_path
        self.original_error = original_error
        super().__init__(f"Transfer to {remote_path} failed: {original_error}")


def _decode(stream: str | bytes | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


class SSHTransport:
    """Remote transport backed by pooled asyncssh connections.

    Channels are ``asyncssh.SSHClientConnection`` objects owned by the
    pool; they are not closed after each job.
    """

    def __init__(self, pool: "ConnectionPool", retry_policy: RetryPolicy | None = None):
        self.pool = pool
        self.retry_policy = retry_policy or RetryPolicy()

    async def connect(self, host: "Host") -> asyncssh.SSHClientConnection:
        """Open (or reuse) a connection to host.

        Raises:
            HostConnectionError: If every attempt in the retry policy fails
        """
        return await get_connection_with_retry(self.pool, host, self.retry_policy)

    async def transfer(
        self,
        channel: asyncssh.SSHClientConnection,
        payload: bytes,
        remote_path: str,
    ) -> None:
        """Write payload to remote_path over SFTP.

        Raises:
            TransferError: If SFTP fails
        """
        try:
            async with channel.start_sftp_client() as sftp:
                async with sftp.open(remote_path, "wb") as remote_file:
                    await remote_file.write(payload)
        except (OSError, asyncssh.Error) as e:
            raise TransferError(remote_path, e) from e
        logger.debug("Transferred %d bytes to %s", len(payload), remote_path)

    async def run(
        self,
        channel: asyncssh.SSHClientConnection,
        command: str,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run command remotely; a non-zero exit is returned, not raised."""
        full_command = f"{export_prefix(env or {})}{command}"
        result = await channel.run(full_command, check=False)

        returncode = result.returncode
        if returncode is None:
            # Killed by a signal
            returncode = -1 if result.exit_signal else 0

        return CommandResult(
            output=_decode(result.stdout),
            error=_decode(result.stderr),
            returncode=returncode,
        )

    async def remove(self, channel: asyncssh.SSHClientConnection, remote_path: str) -> None:
        """Delete remote_path, ignoring a missing file."""
        await channel.run(f"rm -f {quote_path(remote_path)}", check=False)
