"""Deployment tasks and the registry they are looked up in."""

from .base import ClosureTask, Task, TaskRegistry, is_task_name, slugify, task_registry

# Ensure built-in tasks are registered on import
from . import standard as _standard  # noqa: F401

__all__ = ["ClosureTask", "Task", "TaskRegistry", "is_task_name", "slugify", "task_registry"]
