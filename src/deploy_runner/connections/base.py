"""Connection capability consumed by tasks.

A connection runs one shell command at a time and blocks until it completes.
How the command reaches the server (local shell, ssh, nothing at all) is up to
the implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from loguru import logger


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single command."""
    command: str
    output: str = ""
    exit_status: int = 0

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0


class Connection(ABC):
    """Abstract base for command transports."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def _run(self, command: str) -> CommandResult:
        """Run `command` and return its captured output and exit status."""
        ...

    def run_command(self, command: str, with_output: bool = True) -> CommandResult:
        """Run a command synchronously.

        Args:
            command: Shell command line.
            with_output: Echo the command output to the log at INFO level.

        Returns:
            The command's `CommandResult`.
        """
        logger.debug("[{}] $ {}", self.name, command)
        result = self._run(command)
        if with_output and result.output:
            for line in result.output.splitlines():
                logger.info("[{}] {}", self.name, line)
        if not result.succeeded:
            logger.warning("[{}] command exited with status {}: {}", self.name, result.exit_status, command)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
