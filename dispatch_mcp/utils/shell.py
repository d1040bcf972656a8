"""Shell command safety utilities."""

import shlex
from collections.abc import Iterable, Mapping


def quote_path(path: str) -> str:
    """Safely quote a path for shell commands.

    Args:
        path: File system path to quote

    Returns:
        Shell-safe quoted path
    """
    return shlex.quote(path)


def join_command(parts: Iterable[str]) -> str:
    """Join command parts into one shell-safe command line."""
    return " ".join(shlex.quote(p) for p in parts)


def export_prefix(env: Mapping[str, str]) -> str:
    """Build an ``env K=V ...`` prefix for a remote command.

    Returns an empty string when there is nothing to export.
    """
    if not env:
        return ""
    assignments = " ".join(
        f"{key}={shlex.quote(value)}" for key, value in sorted(env.items())
    )
    return f"env {assignments} "
