"""Turn task descriptors into Task instances.

A descriptor is anything a user can put in a queue or hook table:

* a ``Task`` instance (returned as-is) or ``Task`` subclass,
* a task name (``"deploy"``, ``"Deploy"``) or dotted path to a task class,
* a callable reference, ``(target, "method")`` or ``"Target::method"``, where
  the target is an object, a class, or the name of a bound instance,
* any other callable, called with the ``ExecutionContext``,
* any other string, run as a shell command from the current release folder.
"""

from __future__ import annotations

import importlib
import re
from typing import Any, Iterable, Optional

from loguru import logger

from .context import RunOptions
from .errors import UnresolvableTaskError
from .tasks import ClosureTask, Task, TaskRegistry, is_task_name, slugify, task_registry

# A bare CamelCase word or a dotted path ending in one, e.g. `Deploy`, `app.tasks.Migrate`
_CLASS_IDENTIFIER_RE = re.compile(r"^(?:[A-Za-z_][A-Za-z0-9_]*\.)*[A-Z][A-Za-z0-9_]*$")
_CALLABLE_STRING_RE = re.compile(r"^(?P<target>[A-Za-z_][\w.]*)::(?P<method>[A-Za-z_]\w*)$")


def _is_task_class(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, Task)


def looks_like_class_identifier(value: str) -> bool:
    return bool(_CLASS_IDENTIFIER_RE.fullmatch(value))


def _import_object(path: str) -> Optional[Any]:
    if "." not in path:
        return None
    module_name, _, attr = path.rpartition(".")
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    return getattr(module, attr, None)


class TaskResolver:
    """Build Task instances from descriptors.

    Args:
        registry: Task classes available by name (defaults to the global registry).
        instances: Named objects callable references may target.
        command: Options of the originating command, handed to every built task.
    """

    def __init__(
        self,
        registry: Optional[TaskRegistry] = None,
        instances: Optional[dict[str, Any]] = None,
        command: Optional[RunOptions] = None,
    ) -> None:
        self.registry = registry if registry is not None else task_registry
        self.instances: dict[str, Any] = dict(instances or {})
        self.command = command if command is not None else RunOptions()

    def with_command(self, command: RunOptions) -> "TaskResolver":
        """Resolver sharing this one's registries but building tasks for `command`."""
        resolver = TaskResolver(self.registry, command=command)
        resolver.instances = self.instances
        return resolver

    def bind(self, name: str, instance: Any) -> None:
        """Make `instance` available to callable references as `name`."""
        self.instances[name] = instance

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def find_class(self, name: str) -> Optional[type[Task]]:
        task_cls = self.registry.find(name)
        if task_cls is not None:
            return task_cls
        if looks_like_class_identifier(name):
            found = _import_object(name)
            if _is_task_class(found):
                return found
        return None

    def is_callable_reference(self, descriptor: Any) -> bool:
        if isinstance(descriptor, tuple):
            return len(descriptor) == 2 and isinstance(descriptor[1], str)
        return isinstance(descriptor, str) and bool(_CALLABLE_STRING_RE.fullmatch(descriptor))

    def is_deferred(self, descriptor: Any) -> bool:
        """True for literal commands and plain callables, which are wrapped later."""
        if isinstance(descriptor, Task) or _is_task_class(descriptor):
            return False
        if self.is_callable_reference(descriptor):
            return False
        if isinstance(descriptor, str):
            return self.find_class(descriptor) is None and not looks_like_class_identifier(descriptor)
        return callable(descriptor)

    def slug_for(self, identity: Any) -> str:
        """Hook key for `identity`.

        Unknown task names become pseudo-slugs, so hooks can be declared before
        their task class is registered. Any other string is its own key and
        never collides with a task slug.
        """
        if isinstance(identity, Task) or _is_task_class(identity):
            return identity.get_slug()
        if isinstance(identity, str):
            task_cls = self.find_class(identity)
            if task_cls is not None:
                return task_cls.get_slug()
            return slugify(identity) if is_task_name(identity) else identity.strip()
        raise UnresolvableTaskError(identity, "hooks can only target task names, classes or instances")

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def resolve(self, descriptor: Any) -> Task:
        if isinstance(descriptor, Task):
            return descriptor
        if _is_task_class(descriptor):
            return descriptor(self.command)
        if self.is_callable_reference(descriptor):
            return self.from_callable(descriptor)
        if isinstance(descriptor, str):
            task_cls = self.find_class(descriptor)
            if task_cls is not None:
                return task_cls(self.command)
            if looks_like_class_identifier(descriptor):
                raise UnresolvableTaskError(descriptor, "no task class by that name")
            return self.from_string(descriptor)
        if callable(descriptor):
            return self.from_closure(descriptor)
        raise UnresolvableTaskError(descriptor, f"unsupported descriptor type {type(descriptor).__name__}")

    def resolve_many(self, descriptors: Iterable[Any]) -> list[Task]:
        return [self.resolve(descriptor) for descriptor in descriptors]

    def resolve_class(self, name: str) -> Task:
        """Build a task strictly from a class name."""
        task_cls = self.find_class(name)
        if task_cls is None:
            raise UnresolvableTaskError(name, "no task class by that name")
        return task_cls(self.command)

    def from_string(self, command: str) -> ClosureTask:
        logger.debug("Wrapping shell command {!r} into a closure task", command)
        return ClosureTask.for_command(command, self.command)

    def from_closure(self, closure: Any) -> ClosureTask:
        return ClosureTask(closure, command=self.command)

    def from_callable(self, descriptor: Any) -> ClosureTask:
        if isinstance(descriptor, str):
            match = _CALLABLE_STRING_RE.fullmatch(descriptor)
            if match is None:
                raise UnresolvableTaskError(descriptor, "malformed callable reference")
            target, method = match.group("target"), match.group("method")
        else:
            target, method = descriptor

        obj = self._callable_target(descriptor, target)
        bound = getattr(obj, method, None)
        if not callable(bound):
            raise UnresolvableTaskError(descriptor, f"{obj!r} has no callable '{method}'")
        return ClosureTask(bound, command=self.command)

    def _callable_target(self, descriptor: Any, target: Any) -> Any:
        if isinstance(target, str):
            if target in self.instances:
                return self.instances[target]
            found = self.find_class(target)
            if found is None:
                found = _import_object(target)
            if found is None:
                raise UnresolvableTaskError(descriptor, f"unknown callable target '{target}'")
            target = found
        if _is_task_class(target):
            return target(self.command)
        if isinstance(target, type):
            try:
                return target()
            except TypeError as exc:
                raise UnresolvableTaskError(descriptor, f"cannot instantiate {target.__name__}: {exc}") from exc
        return target
