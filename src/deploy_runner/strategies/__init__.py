from .base import CheckStrategy
from .python import PythonStrategy, parse_version, version_satisfies

__all__ = ["CheckStrategy", "PythonStrategy", "parse_version", "version_satisfies"]
