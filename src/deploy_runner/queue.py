"""Queue building and execution.

The builder flattens a list of descriptors into tasks with their hooks
interleaved; the executor runs that queue once per (connection, stage) pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Union

from loguru import logger

from .builder import TaskResolver
from .config import RunnerSettings
from .connections import Connection, ConnectionManager
from .constants import ALL_STAGES, DEFAULT_HOOK_DEPTH, EVENT_AFTER, EVENT_BEFORE, MAX_OUTPUT_PREVIEW
from .context import ExecutionContext, RunOptions
from .hooks import HookRegistry
from .tasks import Task


def _as_descriptor_list(descriptors: Any) -> list[Any]:
    if isinstance(descriptors, list):
        return list(descriptors)
    return [descriptors]


def _preview(value: Any) -> str:
    text = str(value)
    return (text[:MAX_OUTPUT_PREVIEW] + "…") if len(text) > MAX_OUTPUT_PREVIEW else text


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------

class QueueBuilder:
    """Expand descriptors into a flat, hook-interleaved tuple of tasks.

    Args:
        resolver: Builds tasks from descriptors.
        hooks: Listeners to interleave.
        hook_depth: How many levels of hooks to expand.  ``1`` expands the
            listeners of the queued tasks but not the listeners' own hooks;
            ``0`` disables hooks entirely.
    """

    def __init__(
        self,
        resolver: TaskResolver,
        hooks: HookRegistry,
        hook_depth: int = DEFAULT_HOOK_DEPTH,
    ) -> None:
        self.resolver = resolver
        self.hooks = hooks
        self.hook_depth = hook_depth

    def build(self, descriptors: Any, resolver: Optional[TaskResolver] = None) -> tuple[Task, ...]:
        resolver = resolver if resolver is not None else self.resolver

        # Resolve classes and callable references first; literal commands and
        # closures are wrapped in a second pass
        staged: list[Any] = []
        for descriptor in _as_descriptor_list(descriptors):
            staged.append(descriptor if resolver.is_deferred(descriptor) else resolver.resolve(descriptor))
        tasks = [entry if isinstance(entry, Task) else self._wrap(entry, resolver) for entry in staged]

        queue: list[Task] = []
        for task in tasks:
            queue.extend(self.expand(task, resolver, self.hook_depth))
        logger.debug("Built queue: {}", ", ".join(task.slug for task in queue))
        return tuple(queue)

    def expand(
        self,
        task: Task,
        resolver: TaskResolver,
        depth: int,
        path: tuple[str, ...] = (),
    ) -> list[Task]:
        """`task` surrounded by its before/after listeners, `depth` levels deep."""
        if depth <= 0 or task.slug in path:
            return [task]
        path = path + (task.slug,)
        expanded: list[Task] = []
        for listener in self.hooks.lookup(task, EVENT_BEFORE):
            expanded.extend(self.expand(listener.build(resolver), resolver, depth - 1, path))
        expanded.append(task)
        for listener in self.hooks.lookup(task, EVENT_AFTER):
            expanded.extend(self.expand(listener.build(resolver), resolver, depth - 1, path))
        return expanded

    @staticmethod
    def _wrap(descriptor: Any, resolver: TaskResolver) -> Task:
        if isinstance(descriptor, str):
            return resolver.from_string(descriptor)
        return resolver.from_closure(descriptor)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaskOutcome:
    """Result of one task in one pass."""
    connection: str
    stage: Optional[str]
    task: str
    result: Any

    @property
    def failed(self) -> bool:
        return self.result is False

    def to_dict(self) -> dict[str, Any]:
        return {
            "connection": self.connection,
            "stage": self.stage,
            "task": self.task,
            "result": self.result,
            "failed": self.failed,
        }


class ExecutionOutput:
    """Append-only, ordered log of task outcomes for one run."""

    def __init__(self) -> None:
        self._outcomes: list[TaskOutcome] = []

    def append(self, outcome: TaskOutcome) -> None:
        self._outcomes.append(outcome)

    @property
    def outcomes(self) -> tuple[TaskOutcome, ...]:
        return tuple(self._outcomes)

    @property
    def results(self) -> list[Any]:
        return [outcome.result for outcome in self._outcomes]

    @property
    def failed(self) -> bool:
        return any(outcome.failed for outcome in self._outcomes)

    def to_list(self) -> list[dict[str, Any]]:
        return [outcome.to_dict() for outcome in self._outcomes]

    def __iter__(self) -> Iterator[TaskOutcome]:
        return iter(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __getitem__(self, index: int) -> TaskOutcome:
        return self._outcomes[index]

    def __repr__(self) -> str:
        return f"ExecutionOutput({self.results!r})"


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class QueueExecutor:
    """Run a built queue over connections × stages, strictly sequentially.

    A task returning ``False`` aborts the rest of its (connection, stage) pass;
    the next pass still runs unless `halt_on_failure` is set.  Exceptions raised
    by tasks are not caught.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        settings: Optional[RunnerSettings] = None,
        hooks: Optional[HookRegistry] = None,
    ) -> None:
        self.connections = connections
        self.settings = settings if settings is not None else RunnerSettings()
        self.hooks = hooks

    @property
    def stages(self) -> list[str]:
        return list(self.settings.stages.stages)

    def requested_stage(self, options: RunOptions) -> Optional[str]:
        stage = options.stage or self.settings.stages.default
        if stage == ALL_STAGES:
            return None
        return stage

    def stages_for(self, options: RunOptions) -> list[Optional[str]]:
        stage = self.requested_stage(options)
        if stage and stage in self.stages:
            return [stage]
        if self.stages:
            return self.stages
        return [None]

    def run(
        self,
        queue: Iterable[Task],
        options: Optional[RunOptions] = None,
        connections: Union[str, Iterable[str], None] = None,
    ) -> ExecutionOutput:
        options = options if options is not None else RunOptions()
        queue = tuple(queue)
        if self.hooks is not None:
            self.hooks.seal()

        targets = self.connections.resolve(connections)
        halt_on_failure = options.halt_on_failure or self.settings.halt_on_failure
        output = ExecutionOutput()
        for connection in targets:
            for stage in self.stages_for(options):
                ctx = self._context(connection, stage, options)
                if not self.run_pass(queue, ctx, output) and halt_on_failure:
                    logger.error("Halting run after failure on {}", connection.name)
                    return output
        return output

    def run_pass(self, queue: tuple[Task, ...], ctx: ExecutionContext, output: ExecutionOutput) -> bool:
        """Run every task of `queue` in order; False when a task soft-failed."""
        for index, task in enumerate(queue):
            task_ctx = ctx.for_task(task)
            result = task.fire(task_ctx)
            output.append(
                TaskOutcome(
                    connection=ctx.connection_name,
                    stage=task_ctx.stage,
                    task=task.slug,
                    result=result,
                )
            )
            if result is False:
                skipped = len(queue) - index - 1
                if skipped:
                    logger.warning(
                        "[{}] Skipping {} remaining task(s) after {} failed",
                        ctx.connection_name,
                        skipped,
                        task.slug,
                    )
                return False
            logger.debug("[{}] {} -> {}", ctx.connection_name, task.slug, _preview(result))
        return True

    def _context(self, connection: Connection, stage: Optional[str], options: RunOptions) -> ExecutionContext:
        return ExecutionContext(connection=connection, stage=stage, options=options, settings=self.settings)
