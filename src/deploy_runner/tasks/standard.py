"""Built-in deployment tasks.

These are deliberately thin: each one is a short sequence of shell commands run
on the connection of the current pass.  Anything project specific belongs in
hooks or `release_commands`.
"""

from __future__ import annotations

import posixpath
import shlex
from datetime import datetime, timezone
from typing import Any, Optional

from ..context import ExecutionContext
from ..strategies import PythonStrategy
from .base import Task, task_registry


def _release_name() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")


def _list_releases(ctx: ExecutionContext) -> list[str]:
    result = ctx.run(f"ls -1 {ctx.releases_path}", with_output=False)
    if not result.succeeded:
        return []
    return sorted(line.strip() for line in result.output.splitlines() if line.strip())


def _current_release(ctx: ExecutionContext) -> Optional[str]:
    result = ctx.run(f"readlink {ctx.current_release_path}", with_output=False)
    if not result.succeeded or not result.output.strip():
        return None
    return posixpath.basename(result.output.strip().rstrip("/"))


def _switch_current(ctx: ExecutionContext, release: str) -> bool:
    target = posixpath.join(ctx.releases_path, release)
    return ctx.run(f"ln -sfn {shlex.quote(target)} {ctx.current_release_path}").succeeded


@task_registry.register(aliases=("check-environment",))
class Check(Task):
    description = "Check if the server is ready to receive the application"
    uses_stages = False

    def execute(self, ctx: ExecutionContext) -> Any:
        cfg = ctx.settings.check
        strategy = PythonStrategy(
            python=cfg.python,
            binaries=cfg.binaries,
            modules=cfg.modules,
            requires_python=cfg.requires_python,
        )
        missing = strategy.check(ctx)
        if missing:
            return self.halt(f"{ctx.connection_name} is missing: {', '.join(missing)}")
        return True


@task_registry.register
class Setup(Task):
    description = "Set up the remote folder structure"

    def execute(self, ctx: ExecutionContext) -> Any:
        if not ctx.application_root:
            return self.halt("No root_directory configured")
        result = ctx.run(f"mkdir -p {ctx.releases_path} {ctx.shared_path}")
        return result.succeeded


@task_registry.register(aliases=("update",))
class Deploy(Task):
    description = "Create a new release, run the release commands and activate it"

    def execute(self, ctx: ExecutionContext) -> Any:
        if not ctx.application_root:
            return self.halt("No root_directory configured")
        release = _release_name()
        release_path = posixpath.join(ctx.releases_path, release)
        if not ctx.run(f"mkdir -p {release_path}").succeeded:
            return self.halt(f"Unable to create release folder {release_path}")
        for command in ctx.settings.release_commands:
            if not ctx.run_in_folder(release_path, command).succeeded:
                return self.halt(f"Release command failed: {command}")
        if not _switch_current(ctx, release):
            return self.halt(f"Unable to activate release {release}")
        return release


@task_registry.register
class Rollback(Task):
    description = "Activate the release preceding the current one"

    def execute(self, ctx: ExecutionContext) -> Any:
        if not ctx.application_root:
            return self.halt("No root_directory configured")
        releases = _list_releases(ctx)
        current = _current_release(ctx)
        if current not in releases:
            return self.halt("Unable to find the current release")
        index = releases.index(current)
        if index == 0:
            return self.halt("No release to roll back to")
        previous = releases[index - 1]
        if not _switch_current(ctx, previous):
            return self.halt(f"Unable to activate release {previous}")
        return previous


@task_registry.register
class Current(Task):
    description = "Display the release currently in use"

    def execute(self, ctx: ExecutionContext) -> Any:
        if not ctx.application_root:
            return self.halt("No root_directory configured")
        current = _current_release(ctx)
        if current is None:
            return self.halt("No release has been deployed yet")
        return current


@task_registry.register
class Cleanup(Task):
    description = "Remove releases beyond the configured number to keep"

    def execute(self, ctx: ExecutionContext) -> Any:
        if not ctx.application_root:
            return self.halt("No root_directory configured")
        releases = _list_releases(ctx)
        current = _current_release(ctx)
        keep = max(ctx.settings.keep_releases, 1)
        stale = [release for release in releases[:-keep] if release != current]
        if stale:
            paths = " ".join(posixpath.join(ctx.releases_path, release) for release in stale)
            if not ctx.run(f"rm -rf {paths}").succeeded:
                return self.halt("Unable to remove old releases")
        return stale
