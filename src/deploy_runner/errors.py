"""Exception taxonomy for the deploy runner.

Two failure tiers exist for tasks: returning ``False`` is a *soft* failure that
only aborts the current (connection, stage) pass, while raising (any exception,
``TaskFailedError`` included) is a *hard* failure that aborts the whole run.
"""

from __future__ import annotations

from typing import Any


class DeployRunnerError(Exception):
    """Base class for every error raised by deploy_runner."""


class UnresolvableTaskError(DeployRunnerError):
    """A task descriptor could not be turned into a Task."""

    def __init__(self, descriptor: Any, reason: str = "") -> None:
        self.descriptor = descriptor
        self.reason = reason
        message = f"Unable to build a task from {descriptor!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class RegistrySealedError(DeployRunnerError):
    """Hooks were registered after the first run started."""


class ConfigError(DeployRunnerError):
    """The runner configuration is invalid or references unknown entries."""


class TaskFailedError(DeployRunnerError):
    """Raised by a task to abort the entire run."""

    def __init__(self, task_slug: str, message: str) -> None:
        self.task_slug = task_slug
        super().__init__(f"[{task_slug}] {message}")
