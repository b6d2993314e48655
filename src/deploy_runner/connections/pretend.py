from __future__ import annotations

from loguru import logger

from .base import CommandResult, Connection


class PretendConnection(Connection):
    """Record commands without running them (dry-run mode)."""

    def __init__(self, name: str = "pretend") -> None:
        super().__init__(name)
        self.history: list[str] = []

    def _run(self, command: str) -> CommandResult:
        self.history.append(command)
        logger.info("[{}] (pretend) {}", self.name, command)
        return CommandResult(command=command, output="", exit_status=0)
