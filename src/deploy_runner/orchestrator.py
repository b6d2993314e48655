"""Public entry point: register tasks and hooks, then run queues."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional, Union

from loguru import logger

from .builder import TaskResolver
from .config import RunnerSettings, load_settings
from .connections import ConnectionManager, LocalConnection
from .constants import EVENT_AFTER, EVENT_BEFORE
from .context import RunOptions
from .errors import UnresolvableTaskError
from .hooks import HookRegistry, Listener
from .queue import ExecutionOutput, QueueBuilder, QueueExecutor
from .tasks import ClosureTask, Task, task_registry

Connections = Union[str, Iterable[str], None]


class TasksQueue:
    """Handles the registering of tasks and their execution.

    Hooks declared in `settings.hooks` are registered on construction unless a
    pre-populated `hooks` registry is passed in.
    """

    def __init__(
        self,
        settings: Optional[RunnerSettings] = None,
        connections: Optional[ConnectionManager] = None,
        resolver: Optional[TaskResolver] = None,
        hooks: Optional[HookRegistry] = None,
        options: Optional[RunOptions] = None,
    ) -> None:
        self.settings = settings if settings is not None else RunnerSettings()
        self.options = options if options is not None else RunOptions()
        if resolver is None:
            resolver = TaskResolver(registry=task_registry.copy(), command=self.options)
        self.resolver = resolver
        self.connections = connections if connections is not None else ConnectionManager([LocalConnection()])
        if hooks is None:
            hooks = HookRegistry(self.resolver)
            hooks.load(self.settings.hooks)
        self.hooks = hooks
        self.builder = QueueBuilder(self.resolver, self.hooks, self.settings.hook_depth)
        self.executor = QueueExecutor(self.connections, self.settings, self.hooks)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(self, task: Any) -> type[Task]:
        """Register a custom task class so it can be queued by name."""
        if isinstance(task, str):
            task = self.resolver.resolve_class(task)
        task_cls = task if isinstance(task, type) else type(task)
        if not issubclass(task_cls, Task) or task_cls is ClosureTask:
            raise UnresolvableTaskError(task, "only task classes can be registered")
        self.resolver.registry.register(task_cls)
        logger.debug("Registered task {}", task_cls.get_slug())
        return task_cls

    def before(self, task: Any, listeners: Any, priority: int = 0) -> None:
        """Execute `listeners` before `task`."""
        self.hooks.register(task, EVENT_BEFORE, listeners, priority)

    def after(self, task: Any, listeners: Any, priority: int = 0) -> None:
        """Execute `listeners` after `task`."""
        self.hooks.register(task, EVENT_AFTER, listeners, priority)

    def listeners(self, task: Any, event: str, flatten: bool = False) -> list[Union[Task, str]]:
        """Tasks surrounding `task` for `event`; shell commands as strings if `flatten`."""
        entries = self.hooks.lookup(task, event, flatten=flatten)
        return [entry.task if isinstance(entry, Listener) else entry for entry in entries]

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def build_queue(self, tasks: Any, command: Optional[RunOptions] = None) -> tuple[Task, ...]:
        resolver = self.resolver if command is None else self.resolver.with_command(command)
        return self.builder.build(tasks, resolver=resolver)

    def execute(self, queue: Any, connections: Connections = None) -> ExecutionOutput:
        """Run tasks on the given connections, or the configured defaults."""
        return self._run(queue, self.options, connections)

    def on(self, connections: Connections, queue: Any) -> ExecutionOutput:
        """Run tasks on specific connections."""
        return self.execute(queue, connections)

    def run(self, tasks: Any, command: Optional[RunOptions] = None) -> ExecutionOutput:
        """Run tasks on behalf of `command` (its stage option selects the stage)."""
        return self._run(tasks, command if command is not None else self.options, None)

    def _run(self, tasks: Any, command: RunOptions, connections: Connections) -> ExecutionOutput:
        queue = self.build_queue(tasks, command)
        return self.executor.run(queue, command, connections)


def build_tasks_queue(
    project_dir: Path,
    options: Optional[RunOptions] = None,
    settings: Optional[RunnerSettings] = None,
) -> TasksQueue:
    """Wire a `TasksQueue` from the config file of `project_dir`.

    Raises:
        ConfigError: When the config file is unreadable or invalid.
    """
    options = options if options is not None else RunOptions()
    settings = settings if settings is not None else load_settings(project_dir)
    connections = ConnectionManager.from_settings(settings, pretend=options.pretend)
    return TasksQueue(settings=settings, connections=connections, options=options)
