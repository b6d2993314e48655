"""Shared fixtures: a stub connection that echoes or replays canned results."""

from __future__ import annotations

from typing import Optional

import pytest

from deploy_runner.connections import CommandResult, Connection


class EchoConnection(Connection):
    """Return each command as its own output, unless a canned response matches.

    `responses` maps a command prefix to `(output, exit_status)`.
    """

    def __init__(self, name: str = "echo", responses: Optional[dict[str, tuple[str, int]]] = None) -> None:
        super().__init__(name)
        self.responses = dict(responses or {})
        self.history: list[str] = []

    def _run(self, command: str) -> CommandResult:
        self.history.append(command)
        for prefix, (output, status) in self.responses.items():
            if command.startswith(prefix):
                return CommandResult(command=command, output=output, exit_status=status)
        return CommandResult(command=command, output=command, exit_status=0)


@pytest.fixture
def echo_connection() -> EchoConnection:
    return EchoConnection()


@pytest.fixture
def make_connection():
    def _make(name: str = "echo", responses: Optional[dict[str, tuple[str, int]]] = None) -> EchoConnection:
        return EchoConnection(name, responses)

    return _make
