from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .constants import CONFIG_FILE, HOOK_EVENTS, STATE_DIR_NAME
from .context import RunOptions
from .errors import DeployRunnerError
from .io_utils import _save_data
from .orchestrator import TasksQueue, build_tasks_queue
from .queue import ExecutionOutput

SAMPLE_CONFIG: dict[str, Any] = {
    "application_name": "application",
    "root_directory": "/var/www",
    "keep_releases": 4,
    "release_commands": [],
    "connections": {
        "default": ["production"],
        "servers": {
            "production": {"type": "ssh", "host": "example.com", "user": "deploy"},
        },
    },
    "stages": {"stages": [], "default": None},
    "hook_depth": 1,
    "hooks": {"before": {}, "after": {}},
    "check": {"python": "python3", "requires_python": ">=3.10", "binaries": ["git"], "modules": []},
}


def _configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan> - "
            "{message}"
        ),
    )


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _tasks_queue(args: argparse.Namespace, options: Optional[RunOptions] = None) -> TasksQueue:
    return build_tasks_queue(_resolve_project_dir(args.project_dir), options=options)


def _render_output(output: ExecutionOutput, console: Console) -> None:
    table = Table(title="Deployment results")
    table.add_column("Connection", style="cyan")
    table.add_column("Stage")
    table.add_column("Task", style="bold")
    table.add_column("Result")
    for outcome in output:
        result = "[red]failed[/red]" if outcome.failed else str(outcome.result)
        table.add_row(outcome.connection, outcome.stage or "-", outcome.task, result)
    console.print(table)


def _run(args: argparse.Namespace) -> int:
    options = RunOptions(stage=args.stage, pretend=args.pretend, halt_on_failure=args.halt_on_failure)
    queue = _tasks_queue(args, options)
    if args.on:
        output = queue.on(args.on, args.tasks)
    else:
        output = queue.run(args.tasks, options)
    _render_output(output, Console())
    return 1 if output.failed else 0


def _hooks(args: argparse.Namespace) -> int:
    queue = _tasks_queue(args)
    events = [args.event] if args.event else list(HOOK_EVENTS)
    listing = {event: [str(entry) for entry in queue.listeners(args.task, event, flatten=True)] for event in events}
    sys.stdout.write(json.dumps({"task": args.task, "hooks": listing}, indent=2) + "\n")
    return 0


def _tasks(args: argparse.Namespace) -> int:
    queue = _tasks_queue(args)
    registry = queue.resolver.registry
    tasks = [{"slug": slug, "description": task_cls.description} for slug, task_cls in registry.items()]
    sys.stdout.write(json.dumps({"tasks": tasks}, indent=2) + "\n")
    return 0


def _init(args: argparse.Namespace) -> int:
    path = _resolve_project_dir(args.project_dir) / STATE_DIR_NAME / CONFIG_FILE
    if path.exists() and not args.force:
        sys.stderr.write(f"Config already exists: {path} (use --force to overwrite)\n")
        return 1
    _save_data(path, SAMPLE_CONFIG)
    sys.stdout.write(json.dumps({"config": str(path)}) + "\n")
    return 0


def _settings(args: argparse.Namespace) -> int:
    settings = load_settings(_resolve_project_dir(args.project_dir))
    sys.stdout.write(json.dumps(settings.model_dump(), indent=2) + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deploy Runner - run deployment task queues on remote servers")
    parser.add_argument("--project-dir", default=None, help="Project directory (default: current working directory)")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run tasks")
    run.add_argument("tasks", nargs="+", help="Task names, Target::method references or shell commands")
    run.add_argument("--on", nargs="+", default=None, help="Connections to run on (default: configured default)")
    run.add_argument("--stage", default=None, help="Stage to run on (\"all\" for every stage)")
    run.add_argument("--pretend", action="store_true", help="Log commands instead of running them")
    run.add_argument("--halt-on-failure", action="store_true", help="Stop the whole run at the first failed task")
    run.set_defaults(func=_run)

    hooks = subparsers.add_parser("hooks", help="List the hooks surrounding a task")
    hooks.add_argument("task")
    hooks.add_argument("--event", default=None, choices=list(HOOK_EVENTS))
    hooks.set_defaults(func=_hooks)

    tasks = subparsers.add_parser("tasks", help="List registered tasks")
    tasks.set_defaults(func=_tasks)

    init = subparsers.add_parser("init", help="Write a sample config file")
    init.add_argument("--force", action="store_true")
    init.set_defaults(func=_init)

    settings = subparsers.add_parser("config", help="Show the validated configuration")
    settings.set_defaults(func=_settings)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return int(handler(args) or 0)
    except DeployRunnerError as exc:
        logger.error("{}", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
