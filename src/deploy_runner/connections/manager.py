"""Configured connections and the default set a run targets."""

from __future__ import annotations

from typing import Iterable, Optional, Union

from ..config import RunnerSettings, ServerConfig
from ..constants import CONNECTION_TYPE_LOCAL, CONNECTION_TYPE_PRETEND, CONNECTION_TYPE_SSH
from ..errors import ConfigError
from .base import Connection
from .local import LocalConnection
from .pretend import PretendConnection
from .ssh import SshConnection


def build_connection(name: str, server: ServerConfig) -> Connection:
    """Instantiate the connection described by one `servers` entry."""
    if server.type == CONNECTION_TYPE_LOCAL:
        return LocalConnection(name, timeout_seconds=server.timeout_seconds)
    if server.type == CONNECTION_TYPE_SSH:
        if not server.host:
            raise ConfigError(f"Connection '{name}' is of type ssh but has no host")
        return SshConnection(
            name,
            host=server.host,
            user=server.user,
            port=server.port,
            key=server.key,
            timeout_seconds=server.timeout_seconds,
        )
    if server.type == CONNECTION_TYPE_PRETEND:
        return PretendConnection(name)
    raise ConfigError(f"Unknown connection type '{server.type}' for connection '{name}'")


class ConnectionManager:
    """Named connections plus the default list used when a run names none."""

    def __init__(self, connections: Iterable[Connection], default: Optional[list[str]] = None) -> None:
        self._connections: dict[str, Connection] = {}
        for connection in connections:
            self._connections[connection.name] = connection
        self._default = list(default) if default else list(self._connections)[:1]
        for name in self._default:
            self.get(name)

    @classmethod
    def from_settings(cls, settings: RunnerSettings, pretend: bool = False) -> "ConnectionManager":
        connections: list[Connection] = []
        for name, server in settings.servers.items():
            if pretend:
                connections.append(PretendConnection(name))
            else:
                connections.append(build_connection(name, server))
        return cls(connections, settings.default_connections)

    @property
    def names(self) -> list[str]:
        return list(self._connections)

    @property
    def default(self) -> list[str]:
        return list(self._default)

    def get(self, name: str) -> Connection:
        if name not in self._connections:
            available = ", ".join(sorted(self._connections)) or "none"
            raise ConfigError(f"Unknown connection '{name}' (configured: {available})")
        return self._connections[name]

    def resolve(self, selection: Union[str, Iterable[str], None] = None) -> list[Connection]:
        """Return the connections a run targets, in selection order.

        An explicit selection applies to the caller's run only; the configured
        default list is left untouched.
        """
        if selection is None:
            names = self._default
        elif isinstance(selection, str):
            names = [selection]
        else:
            names = list(selection)
        return [self.get(name) for name in names]
