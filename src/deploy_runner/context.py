"""Run options and the per-pass execution context handed to every task."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Optional

from .config import RunnerSettings
from .connections.base import CommandResult, Connection
from .constants import CURRENT_DIR, RELEASES_DIR, SHARED_DIR

if TYPE_CHECKING:
    from .tasks.base import Task


@dataclass
class RunOptions:
    """Options of the command that started a run."""
    stage: Optional[str] = None
    pretend: bool = False
    halt_on_failure: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def option(self, name: str, default: Any = None) -> Any:
        if name in ("stage", "pretend", "halt_on_failure"):
            value = getattr(self, name)
            return default if value is None else value
        return self.extra.get(name, default)


@dataclass(frozen=True)
class ExecutionContext:
    """Everything a task needs while it executes.

    A new context is created for every (connection, stage) pass, so tasks never
    read a shared "current connection" or "current stage".
    """
    connection: Connection
    stage: Optional[str] = None
    options: RunOptions = field(default_factory=RunOptions)
    settings: RunnerSettings = field(default_factory=RunnerSettings)
    task: Optional["Task"] = None

    @property
    def connection_name(self) -> str:
        return self.connection.name

    @property
    def application_name(self) -> str:
        return self.settings.application_name

    @property
    def root_directory(self) -> Optional[str]:
        return self.settings.root_directory

    def for_task(self, task: "Task") -> "ExecutionContext":
        """Context seen by `task`: stage-unaware tasks run without a stage."""
        return replace(self, task=task, stage=self.stage if task.uses_stages else None)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def application_root(self) -> Optional[str]:
        if not self.root_directory:
            return None
        parts = [self.root_directory, self.application_name]
        if self.stage:
            parts.append(self.stage)
        return posixpath.join(*parts)

    def folder(self, *parts: str) -> Optional[str]:
        root = self.application_root
        if root is None:
            return None
        return posixpath.join(root, *parts)

    @property
    def releases_path(self) -> Optional[str]:
        return self.folder(RELEASES_DIR)

    @property
    def current_release_path(self) -> Optional[str]:
        return self.folder(CURRENT_DIR)

    @property
    def shared_path(self) -> Optional[str]:
        return self.folder(SHARED_DIR)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def run(self, command: str, with_output: bool = True) -> CommandResult:
        return self.connection.run_command(command, with_output=with_output)

    def run_in_folder(self, folder: Optional[str], command: str, with_output: bool = True) -> CommandResult:
        if folder:
            command = f"cd {folder} && {command}"
        return self.run(command, with_output=with_output)

    def run_for_current_release(self, command: str, with_output: bool = True) -> CommandResult:
        """Run `command` from the current release folder when one is configured."""
        return self.run_in_folder(self.current_release_path, command, with_output=with_output)
