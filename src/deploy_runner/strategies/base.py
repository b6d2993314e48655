"""Check strategies verify that a server can receive the application."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..context import ExecutionContext


class CheckStrategy(ABC):
    """Abstract base for server readiness checks."""

    language: str = ""
    description: str = ""

    @abstractmethod
    def check(self, ctx: ExecutionContext) -> list[str]:
        """Return the names of the requirements that are missing on the server."""
        ...

    def binary_exists(self, ctx: ExecutionContext, binary: str) -> bool:
        result = ctx.run(f"command -v {binary}", with_output=False)
        return result.succeeded and bool(result.output.strip())
