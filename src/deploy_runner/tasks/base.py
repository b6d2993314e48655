"""Base class and registry for deployment tasks.

Each task is a class that knows how to do one unit of deployment work on the
connection it is handed.  Tasks are identified by their *slug*, which is also
the key hooks are registered under.
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Iterable, Optional

from loguru import logger

from ..context import ExecutionContext, RunOptions
from ..errors import TaskFailedError


_CAMEL_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")
# A task name as users type it: `Deploy`, `deploy`, `check-environment`, `check_environment`
_TASK_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:-[A-Za-z0-9_]+)*")


def is_task_name(name: str) -> bool:
    return bool(_TASK_NAME_RE.fullmatch(name))


def slugify(name: str) -> str:
    """Kebab-case `name`: `CheckEnvironment` -> `check-environment`."""
    name = _ACRONYM_BOUNDARY_RE.sub(r"\1-\2", name.strip())
    name = _CAMEL_BOUNDARY_RE.sub(r"\1-\2", name)
    return _NON_SLUG_RE.sub("-", name.lower()).strip("-")


# ---------------------------------------------------------------------------
# Base task class
# ---------------------------------------------------------------------------

class Task(ABC):
    """Abstract base for task implementations."""

    #: Explicit slug; derived from the class name when unset
    name: ClassVar[Optional[str]] = None
    description: ClassVar[str] = ""
    #: Whether the stage of the current pass applies to this task
    uses_stages: ClassVar[bool] = True

    def __init__(self, command: Optional[RunOptions] = None) -> None:
        self.command = command if command is not None else RunOptions()

    @classmethod
    def get_slug(cls) -> str:
        return cls.name or slugify(cls.__name__)

    @property
    def slug(self) -> str:
        return self.get_slug()

    @property
    def display_name(self) -> str:
        return self.slug.replace("-", " ").title()

    @abstractmethod
    def execute(self, ctx: ExecutionContext) -> Any:
        """Run the task. Returning exactly ``False`` marks a soft failure."""
        ...

    def fire(self, ctx: ExecutionContext) -> Any:
        """Execute with logging around it."""
        where = ctx.connection_name if not ctx.stage else f"{ctx.connection_name}/{ctx.stage}"
        logger.info("[{}] Running task {}", where, self.slug)
        started = time.monotonic()
        result = self.execute(ctx)
        elapsed = time.monotonic() - started
        if result is False:
            logger.error("[{}] Task {} failed after {:.2f}s", where, self.slug, elapsed)
        else:
            logger.info("[{}] Task {} done in {:.2f}s", where, self.slug, elapsed)
        return result

    def halt(self, message: str) -> bool:
        """Log `message` and return the soft-failure sentinel."""
        logger.error("[{}] {}", self.slug, message)
        return False

    def fail(self, message: str) -> None:
        """Abort the whole run."""
        raise TaskFailedError(self.slug, message)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.slug}>"


class ClosureTask(Task):
    """Task wrapping a plain callable, or a literal shell command."""

    name = "closure"
    description = "Run a closure or a shell command"

    def __init__(
        self,
        closure: Callable[[ExecutionContext], Any],
        string_task: Optional[str] = None,
        command: Optional[RunOptions] = None,
    ) -> None:
        super().__init__(command)
        self.closure = closure
        self.string_task = string_task

    @classmethod
    def for_command(cls, string_task: str, command: Optional[RunOptions] = None) -> "ClosureTask":
        """Wrap a literal shell command; a non-zero exit is a soft failure."""

        def _run(ctx: ExecutionContext) -> Any:
            result = ctx.run_for_current_release(string_task)
            return result.output if result.succeeded else False

        return cls(_run, string_task=string_task, command=command)

    def execute(self, ctx: ExecutionContext) -> Any:
        return self.closure(ctx)

    def __repr__(self) -> str:
        if self.string_task is not None:
            return f"<ClosureTask {self.string_task!r}>"
        label = getattr(self.closure, "__qualname__", repr(self.closure))
        return f"<ClosureTask {label}>"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TaskRegistry:
    """Registry of task classes, looked up by slug, class name or alias.

    Built-in tasks register themselves on import via ``register()``.  Lookups
    accept bare names only and ignore case and `-`/`_` separators, so
    `Deploy`, `deploy` and `check_environment` all resolve while `./deploy`
    does not.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, type[Task]] = {}
        self._aliases: dict[str, str] = {}

    def register(
        self,
        task_cls: Optional[type[Task]] = None,
        *,
        aliases: Iterable[str] = (),
    ) -> Any:
        """Register a task class. Can be used as a (parametrized) decorator."""

        def _register(cls: type[Task]) -> type[Task]:
            if not (isinstance(cls, type) and issubclass(cls, Task)):
                raise TypeError(f"{cls!r} is not a Task subclass")
            slug = cls.get_slug()
            self._tasks[slug] = cls
            for alias in (cls.__name__, *aliases):
                key = slugify(alias)
                if key != slug:
                    self._aliases[key] = slug
            return cls

        if task_cls is not None:
            return _register(task_cls)
        return _register

    def find(self, name: str) -> Optional[type[Task]]:
        """Task class registered under `name`, or None.

        Only bare task names are looked up; anything else (paths, shell
        punctuation, whitespace) never matches.
        """
        if not is_task_name(name):
            return None
        key = slugify(name)
        if key in self._tasks:
            return self._tasks[key]
        alias = self._aliases.get(key)
        return self._tasks.get(alias) if alias else None

    def get(self, name: str) -> type[Task]:
        task_cls = self.find(name)
        if task_cls is None:
            available = ", ".join(sorted(self._tasks.keys()))
            raise KeyError(f"Unknown task '{name}' (registered: {available})")
        return task_cls

    def has(self, name: str) -> bool:
        return self.find(name) is not None

    def list_tasks(self) -> list[str]:
        return sorted(self._tasks.keys())

    def items(self) -> list[tuple[str, type[Task]]]:
        return sorted(self._tasks.items())

    def copy(self) -> "TaskRegistry":
        clone = TaskRegistry()
        clone._tasks = dict(self._tasks)
        clone._aliases = dict(self._aliases)
        return clone


# Singleton registry; built-in tasks register here on import
task_registry = TaskRegistry()
