from __future__ import annotations

import subprocess
from typing import Optional

from ..constants import DEFAULT_COMMAND_TIMEOUT_SECONDS, DEFAULT_SSH_PORT
from .base import CommandResult, Connection


class SshConnection(Connection):
    """Run commands on a remote host through the system `ssh` client.

    Authentication is left to the ssh client (agent, config file, or `key`).
    """

    def __init__(
        self,
        name: str,
        host: str,
        user: Optional[str] = None,
        port: int = DEFAULT_SSH_PORT,
        key: Optional[str] = None,
        timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(name)
        self.host = host
        self.user = user
        self.port = port
        self.key = key
        self.timeout_seconds = timeout_seconds

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host

    def build_argv(self, command: str) -> list[str]:
        argv = ["ssh", "-o", "BatchMode=yes", "-p", str(self.port)]
        if self.key:
            argv += ["-i", self.key]
        argv += [self.target, command]
        return argv

    def _run(self, command: str) -> CommandResult:
        try:
            result = subprocess.run(
                self.build_argv(command),
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=command,
                output=f"Command timed out after {self.timeout_seconds} seconds on {self.target}",
                exit_status=-1,
            )
        output = (result.stdout + result.stderr).strip()
        return CommandResult(command=command, output=output, exit_status=result.returncode)
