from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

from ..constants import DEFAULT_COMMAND_TIMEOUT_SECONDS
from .base import CommandResult, Connection


class LocalConnection(Connection):
    """Run commands through the local shell."""

    def __init__(
        self,
        name: str = "local",
        cwd: Optional[Path] = None,
        timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(name)
        self.cwd = cwd
        self.timeout_seconds = timeout_seconds

    def _run(self, command: str) -> CommandResult:
        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=command,
                output=f"Command timed out after {self.timeout_seconds} seconds",
                exit_status=-1,
            )
        output = (result.stdout + result.stderr).strip()
        return CommandResult(command=command, output=output, exit_status=result.returncode)
