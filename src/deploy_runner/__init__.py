"""Provide the public `deploy_runner` package exports."""

from __future__ import annotations

from .context import ExecutionContext, RunOptions
from .errors import DeployRunnerError, RegistrySealedError, TaskFailedError, UnresolvableTaskError
from .orchestrator import TasksQueue, build_tasks_queue
from .tasks import ClosureTask, Task, task_registry

__all__ = [
    "ClosureTask",
    "DeployRunnerError",
    "ExecutionContext",
    "RegistrySealedError",
    "RunOptions",
    "Task",
    "TaskFailedError",
    "TasksQueue",
    "UnresolvableTaskError",
    "build_tasks_queue",
    "task_registry",
]
