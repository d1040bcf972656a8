"""Hostname detection utilities for localhost identification."""

import socket


def get_server_hostname() -> str:
    """Get the hostname of the machine running Dispatch MCP (lowercase)."""
    return socket.gethostname().lower()


def is_localhost_target(target_host: str) -> bool:
    """Check if target host is the same as the server host.

    Compares case-insensitively and treats a short name as matching
    the FQDN of the same machine, in either direction.
    """
    if not target_host:
        return False

    server_hostname = get_server_hostname()
    target_lower = target_host.lower()

    if target_lower == server_hostname:
        return True

    if "." in server_hostname:
        short_name = server_hostname.split(".")[0]
        if target_lower == short_name:
            return True

    if "." in target_lower:
        target_short = target_lower.split(".")[0]
        if target_short == server_hostname:
            return True

    return False
