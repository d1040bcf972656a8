"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Dispatch
    host_timeout: int = field(default=300)
    connect_attempts: int = field(default=1)
    connect_backoff: float = field(default=1.0)
    remote_workdir: str = field(default="/tmp")
    cleanup_remote: bool = field(default=True)
    coordinator: str | None = field(default=None)
    group: str = field(default="*")

    # Connection pool
    idle_timeout: int = field(default=60)
    max_pool_size: int = field(default=100)

    # Transport
    transport: str = field(default="http")
    http_host: str = field(default="0.0.0.0")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from DISPATCH_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        attempts = cls._get_int("DISPATCH_CONNECT_ATTEMPTS", 1)
        if attempts < 1:
            logger.warning(
                "DISPATCH_CONNECT_ATTEMPTS must be >= 1, got %d. Using 1", attempts
            )
            attempts = 1

        backoff = cls._get_float("DISPATCH_CONNECT_BACKOFF", 1.0)
        if backoff < 0:
            logger.warning(
                "DISPATCH_CONNECT_BACKOFF must be >= 0, got %s. Using default: 1.0",
                backoff,
            )
            backoff = 1.0

        host_timeout = cls._get_int("DISPATCH_HOST_TIMEOUT", 300)
        if host_timeout <= 0:
            logger.warning(
                "DISPATCH_HOST_TIMEOUT must be > 0, got %d. Using default: 300",
                host_timeout,
            )
            host_timeout = 300

        max_pool_size = cls._get_int("DISPATCH_MAX_POOL_SIZE", 100)
        if max_pool_size <= 0:
            logger.warning(
                "DISPATCH_MAX_POOL_SIZE must be > 0, got %d. Using default: 100",
                max_pool_size,
            )
            max_pool_size = 100

        return cls(
            host_timeout=host_timeout,
            connect_attempts=attempts,
            connect_backoff=backoff,
            remote_workdir=os.getenv("DISPATCH_REMOTE_WORKDIR", "/tmp"),
            cleanup_remote=cls._get_bool("DISPATCH_CLEANUP_REMOTE", True),
            coordinator=os.getenv("DISPATCH_COORDINATOR") or None,
            group=os.getenv("DISPATCH_GROUP", "*") or "*",
            idle_timeout=cls._get_int("DISPATCH_IDLE_TIMEOUT", 60),
            max_pool_size=max_pool_size,
            transport=cls._get_transport(),
            http_host=os.getenv("DISPATCH_HTTP_HOST", "0.0.0.0"),
            http_port=cls._get_int("DISPATCH_HTTP_PORT", 8000),
            log_level=os.getenv("DISPATCH_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("DISPATCH_LOG_COLORS", True),
            log_payloads=cls._get_bool("DISPATCH_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("DISPATCH_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("DISPATCH_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment, falling back to default on bad input."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment ("http" or "stdio")."""
        transport = os.getenv("DISPATCH_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"
