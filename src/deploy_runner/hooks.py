"""Before/after listeners keyed by task slug."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Optional, Union

from loguru import logger

from .builder import TaskResolver
from .constants import HOOK_EVENTS
from .errors import RegistrySealedError
from .tasks import ClosureTask, Task


@dataclass(frozen=True)
class Listener:
    """A task registered to run before or after the task with `task_slug`."""
    task_slug: str
    event: str
    priority: int
    task: Task
    order: int  # registration sequence, breaks priority ties
    descriptor: Any = None

    def build(self, resolver: TaskResolver) -> Task:
        """Fresh task for a queue build; prebuilt Task descriptors are reused as-is."""
        if self.descriptor is None:
            return self.task
        return resolver.resolve(self.descriptor)


class HookRegistry:
    """Registry of hook listeners.

    Hooks are usually declared at startup from the config file.  The registry is
    sealed once the first run starts; registering afterwards raises
    `RegistrySealedError`.
    """

    def __init__(self, resolver: TaskResolver) -> None:
        self.resolver = resolver
        self._listeners: dict[tuple[str, str], list[Listener]] = {}
        self._sequence = itertools.count()
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        self._sealed = True

    def load(self, table: dict[str, dict[str, Any]]) -> None:
        """Register a config table shaped `event -> task -> listener(s)`."""
        for event, tasks in table.items():
            for task, listeners in tasks.items():
                self.register(task, event, listeners)

    def register(self, task_identity: Any, event: str, listeners: Any, priority: int = 0) -> None:
        if self._sealed:
            raise RegistrySealedError(
                f"Cannot register '{event}' hooks on {task_identity!r}: a run has already started"
            )
        if event not in HOOK_EVENTS:
            raise ValueError(f"Unknown hook event '{event}' (expected one of: {', '.join(HOOK_EVENTS)})")

        if isinstance(task_identity, (list, tuple)):
            for identity in task_identity:
                self.register(identity, event, listeners, priority)
            return

        slug = self.resolver.slug_for(task_identity)
        for descriptor in _as_descriptor_list(listeners):
            task = self.resolver.resolve(descriptor)
            listener = Listener(
                task_slug=slug,
                event=event,
                priority=priority,
                task=task,
                order=next(self._sequence),
                descriptor=descriptor,
            )
            self._listeners.setdefault((slug, event), []).append(listener)
            logger.debug("Registered {} listener {!r} on {} (priority {})", event, task, slug, priority)

    def lookup(
        self,
        task_identity: Any,
        event: str,
        flatten: bool = False,
    ) -> list[Union[Listener, str]]:
        """Listeners for `task_identity`, highest priority first.

        With `flatten`, listeners wrapping a literal shell command are replaced
        by the command string (for display only).
        """
        slug = self.resolver.slug_for(task_identity)
        listeners = sorted(
            self._listeners.get((slug, event), []),
            key=lambda listener: (-listener.priority, listener.order),
        )
        if not flatten:
            return list(listeners)
        flattened: list[Union[Listener, str]] = []
        for listener in listeners:
            string_task = _string_task(listener.task)
            flattened.append(string_task if string_task is not None else listener)
        return flattened

    def tasks_for(self, task_identity: Any, event: str) -> list[Task]:
        return [listener.task for listener in self.lookup(task_identity, event)]

    def slugs(self) -> list[str]:
        return sorted({slug for slug, _ in self._listeners})

    def __len__(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())


def _as_descriptor_list(listeners: Any) -> list[Any]:
    if isinstance(listeners, list):
        return listeners
    return [listeners]


def _string_task(task: Task) -> Optional[str]:
    if isinstance(task, ClosureTask):
        return task.string_task
    return None
