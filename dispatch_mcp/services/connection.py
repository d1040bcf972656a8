"""SSH connection helper with caller-supplied retry policy."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from dispatch_mcp.models import RetryPolicy

if TYPE_CHECKING:
    from dispatch_mcp.models import Host
    from dispatch_mcp.protocols import SSHConnectionPool

logger = logging.getLogger(__name__)


class HostConnectionError(Exception):
    """Failed to establish SSH connection after every allowed attempt."""

    def __init__(self, host_name: str, original_error: Exception, attempts: int = 1):
        """Initialize connection error.

        Args:
            host_name: Name of the SSH host
            original_error: Exception raised by the last attempt
            attempts: Number of attempts made
        """
        self.host_name = host_name
        self.original_error = original_error
        self.attempts = attempts
        super().__init__(f"Cannot connect to {host_name}: {original_error}")


async def get_connection_with_retry(
    pool: "SSHConnectionPool",
    host: "Host",
    policy: RetryPolicy | None = None,
) -> Any:
    """Get a pooled SSH connection, retrying per ``policy``.

    Between attempts the possibly stale pooled connection is dropped and
    the policy's backoff delay is observed. The default policy makes a
    single attempt.

    Args:
        pool: Connection pool
        host: Host to connect to
        policy: Retry policy (defaults to one attempt)

    Returns:
        Active SSH connection

    Raises:
        HostConnectionError: If every attempt fails
    """
    policy = policy or RetryPolicy()
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        delay = policy.delay_before(attempt)
        if delay:
            await asyncio.sleep(delay)
        try:
            conn = await pool.get_connection(host)
            if attempt > 1:
                logger.info("Retry connection to %s succeeded (attempt %d)", host.name, attempt)
            return conn
        except Exception as e:
            last_error = e
            if attempt < policy.max_attempts:
                logger.warning(
                    "Connection to %s failed: %s, retrying (attempt %d/%d)",
                    host.name,
                    e,
                    attempt + 1,
                    policy.max_attempts,
                )
                await pool.remove_connection(host.name)

    assert last_error is not None
    logger.error(
        "Connection to %s failed after %d attempt(s): %s",
        host.name,
        policy.max_attempts,
        last_error,
    )
    raise HostConnectionError(host.name, last_error, policy.max_attempts) from last_error
