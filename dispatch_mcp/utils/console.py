"""Colorful console logging formatter."""

import logging
import re
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names
COMPONENT_COLORS = {
    "dispatch_mcp.server": COLORS["bright_cyan"],
    "dispatch_mcp.services.pool": COLORS["bright_magenta"],
    "dispatch_mcp.services.dispatcher": COLORS["bright_blue"],
    "dispatch_mcp.services.coordinator": COLORS["blue"],
    "dispatch_mcp.services.registry": COLORS["magenta"],
    "dispatch_mcp.middleware": COLORS["yellow"],
    "dispatch_mcp.config": COLORS["green"],
    "default": COLORS["white"],
}

_PACKAGE_PREFIX = "dispatch_mcp."

_DURATION_RE = re.compile(r"(\d+\.?\d*m?s)\b")
_SSH_TARGET_RE = re.compile(r"(\w+@[\w\.\-]+:\d+)")
_JOB_RE = re.compile(r"(job=[0-9a-f]+)")
_EXIT_RE = re.compile(r"(exit=\d+)")


class ColorfulFormatter(logging.Formatter):
    """Log formatter with local timestamps and component highlighting."""

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created).astimezone()
        return f"{dt:%H:%M:%S}.{int(record.msecs):03d} {dt:%m/%d}"

    def _format_level(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, COLORS["white"])
        return self._colorize(f"{record.levelname:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith(_PACKAGE_PREFIX):
            name = name[len(_PACKAGE_PREFIX):]
        color = self._get_component_color(record.name)
        return self._colorize(f"{name:<22}", color)

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as ``time | level | component | message``."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._format_level(record)
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    def _highlight_message(self, message: str) -> str:
        """Highlight durations, SSH targets, job ids and exit codes."""
        if not self.use_colors:
            return message

        message = _DURATION_RE.sub(
            f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message
        )
        message = _SSH_TARGET_RE.sub(
            f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message
        )
        message = _JOB_RE.sub(f"{COLORS['bright_cyan']}\\1{COLORS['reset']}", message)
        message = _EXIT_RE.sub(f"{COLORS['cyan']}\\1{COLORS['reset']}", message)
        return message


class MCPRequestFormatter(ColorfulFormatter):
    """Formatter that prefixes lifecycle events with a short marker."""

    MARKERS = (
        (("starting", "ready"), ">>>", "bright_green"),
        (("shutting down", "shutdown"), "<<<", "bright_red"),
        (("error", "failed"), "!!", "bright_red"),
        (("warning", "slow", "timed out"), "!", "bright_yellow"),
        (("completed", "succeeded"), "OK", "bright_green"),
        (("opening", "dispatching"), "+", "bright_cyan"),
        (("closing", "removing"), "-", "bright_yellow"),
        (("reusing",), "~", "bright_magenta"),
    )

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.use_colors:
            return base

        message = record.getMessage().lower()
        for keywords, marker, color in self.MARKERS:
            if any(k in message for k in keywords):
                return f"{COLORS[color]}{marker:<3}{COLORS['reset']} {base}"
        return f"    {base}"
