from .base import CommandResult, Connection
from .local import LocalConnection
from .manager import ConnectionManager, build_connection
from .pretend import PretendConnection
from .ssh import SshConnection

__all__ = [
    "CommandResult",
    "Connection",
    "ConnectionManager",
    "LocalConnection",
    "PretendConnection",
    "SshConnection",
    "build_connection",
]
