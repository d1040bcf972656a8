"""Interpreter registry for script jobs.

Maps an interpreter identifier ("bash", "rscript", ...) to a handler
that knows the script file suffix and how to build the remote command.
Identifiers are resolved when a job is validated, never mid-dispatch.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from dispatch_mcp.utils.shell import join_command

logger = logging.getLogger(__name__)


class UnknownInterpreterError(ValueError):
    """No handler is registered for the requested interpreter."""

    def __init__(self, name: str, known: Sequence[str]):
        self.name = name
        self.known = list(known)
        super().__init__(
            f"Unknown interpreter: {name!r} (known: {', '.join(self.known) or 'none'})"
        )


class InterpreterHandler(ABC):
    """Base class for interpreter handlers."""

    #: Identifier used in ScriptJob.interpreter
    name: str = ""
    #: Suffix of the remote script file
    suffix: str = ""

    @abstractmethod
    def executable(self) -> list[str]:
        """Program (and fixed flags) that runs a script file."""

    def build_command(self, remote_path: str, arguments: Sequence[str] = ()) -> str:
        """Build the shell command that runs remote_path with arguments."""
        return join_command([*self.executable(), remote_path, *arguments])

    def get_description(self) -> str:
        return self.__doc__ or f"{self.name} interpreter"


class BashHandler(InterpreterHandler):
    """Run the script with bash."""

    name = "bash"
    suffix = ".sh"

    def executable(self) -> list[str]:
        return ["bash"]


class ShHandler(InterpreterHandler):
    """Run the script with POSIX sh."""

    name = "sh"
    suffix = ".sh"

    def executable(self) -> list[str]:
        return ["sh"]


class PythonHandler(InterpreterHandler):
    """Run the script with python3 (unbuffered so output is not lost on timeout)."""

    name = "python"
    suffix = ".py"

    def executable(self) -> list[str]:
        return ["python3", "-u"]


class RscriptHandler(InterpreterHandler):
    """Run the script with Rscript."""

    name = "rscript"
    suffix = ".R"

    def executable(self) -> list[str]:
        return ["Rscript", "--vanilla"]


class InterpreterRegistry:
    """Registry of interpreter handlers keyed by identifier."""

    def __init__(self, handlers: Sequence[InterpreterHandler] | None = None):
        self._handlers: dict[str, InterpreterHandler] = {}
        for handler in handlers or ():
            self.register(handler)

    @classmethod
    def with_defaults(cls) -> "InterpreterRegistry":
        """Registry preloaded with bash, sh, python and rscript."""
        return cls([BashHandler(), ShHandler(), PythonHandler(), RscriptHandler()])

    def register(self, handler: InterpreterHandler) -> None:
        """Register a handler, replacing any handler with the same name.

        Raises:
            ValueError: If the handler has no name
        """
        if not handler.name:
            raise ValueError(f"{type(handler).__name__} has no interpreter name")
        key = handler.name.lower()
        if key in self._handlers:
            logger.info("Replacing interpreter handler: %s", key)
        self._handlers[key] = handler
        logger.debug("Registered interpreter handler: %s", key)

    def resolve(self, name: str) -> InterpreterHandler:
        """Look up a handler by identifier (case-insensitive).

        Raises:
            UnknownInterpreterError: If no handler is registered
        """
        handler = self._handlers.get(name.lower())
        if handler is None:
            raise UnknownInterpreterError(name, self.names)
        return handler

    @property
    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._handlers
