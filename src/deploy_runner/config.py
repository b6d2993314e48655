"""Load optional runner configuration from `.deploy_runner/config.yaml`."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from .constants import (
    CONFIG_FILE,
    CONNECTION_TYPE_LOCAL,
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_CONNECTION_NAME,
    DEFAULT_HOOK_DEPTH,
    DEFAULT_KEEP_RELEASES,
    DEFAULT_SSH_PORT,
    HOOK_EVENTS,
    STATE_DIR_NAME,
)
from .errors import ConfigError
from .io_utils import _load_data_with_error


class ServerConfig(BaseModel):
    """One configured connection target."""

    type: str = CONNECTION_TYPE_LOCAL
    host: Optional[str] = None
    user: Optional[str] = None
    port: int = DEFAULT_SSH_PORT
    key: Optional[str] = None
    timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS


class StagesConfig(BaseModel):
    stages: list[str] = Field(default_factory=list)
    default: Optional[str] = None


class CheckConfig(BaseModel):
    """Requirements verified by the `check` task."""

    python: str = "python3"
    #: Version constraint for the interpreter, e.g. ">=3.10" or ">=3.10,<4"
    requires_python: Optional[str] = None
    binaries: list[str] = Field(default_factory=list)
    modules: list[str] = Field(default_factory=list)


class RunnerSettings(BaseModel):
    """Validated view of the runner config file."""

    application_name: str = "application"
    root_directory: Optional[str] = None
    keep_releases: int = DEFAULT_KEEP_RELEASES
    release_commands: list[str] = Field(default_factory=list)
    hook_depth: int = DEFAULT_HOOK_DEPTH
    halt_on_failure: bool = False
    default_connections: list[str] = Field(default_factory=lambda: [DEFAULT_CONNECTION_NAME])
    servers: dict[str, ServerConfig] = Field(
        default_factory=lambda: {DEFAULT_CONNECTION_NAME: ServerConfig()}
    )
    stages: StagesConfig = Field(default_factory=StagesConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)
    hooks: dict[str, dict[str, Any]] = Field(default_factory=dict)


def load_runner_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional runner config file.

    Args:
        project_dir: Repository root directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    project_dir = project_dir.resolve()
    path = project_dir / STATE_DIR_NAME / CONFIG_FILE
    if not path.exists():
        return {}, None
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def get_hooks_config(config: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Extract the hook table (`event -> task -> listener(s)`) from the runner config.

    Unknown events and malformed entries are dropped.
    """
    raw = _get_nested(config, "hooks")
    if not isinstance(raw, dict):
        return {}
    hooks: dict[str, dict[str, Any]] = {}
    for event in HOOK_EVENTS:
        table = raw.get(event)
        if isinstance(table, dict):
            hooks[event] = {str(task): listeners for task, listeners in table.items() if listeners}
    return hooks


def get_stages_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the stages block, accepting a bare list as shorthand for `stages.stages`."""
    raw = _get_nested(config, "stages")
    if isinstance(raw, list):
        return {"stages": [str(stage) for stage in raw], "default": None}
    if not isinstance(raw, dict):
        return {"stages": [], "default": None}
    return {
        "stages": [str(stage) for stage in _as_list(raw.get("stages"))],
        "default": raw.get("default"),
    }


def get_connections_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the connections block.

    Returns:
        A mapping with `default` (list of names) and `servers` (name -> mapping).
    """
    raw = _get_nested(config, "connections")
    if not isinstance(raw, dict):
        return {}
    servers = raw.get("servers")
    return {
        "default": [str(name) for name in _as_list(raw.get("default"))],
        "servers": servers if isinstance(servers, dict) else {},
    }


def get_check_config(config: dict[str, Any]) -> dict[str, Any]:
    raw = _get_nested(config, "check")
    return raw if isinstance(raw, dict) else {}


def build_settings(config: dict[str, Any]) -> RunnerSettings:
    """Validate a raw config mapping into `RunnerSettings`.

    Raises:
        ConfigError: When a block does not match the expected schema.
    """
    values: dict[str, Any] = {
        "stages": get_stages_config(config),
        "check": get_check_config(config),
        "hooks": get_hooks_config(config),
    }
    for key in (
        "application_name",
        "root_directory",
        "keep_releases",
        "release_commands",
        "hook_depth",
        "halt_on_failure",
    ):
        if config.get(key) is not None:
            values[key] = config[key]
    connections = get_connections_config(config)
    if connections.get("servers"):
        values["servers"] = connections["servers"]
    if connections.get("default"):
        values["default_connections"] = connections["default"]
    elif connections.get("servers"):
        values["default_connections"] = list(connections["servers"])[:1]
    try:
        return RunnerSettings.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid runner config: {exc}") from exc


def load_settings(project_dir: Path) -> RunnerSettings:
    """Load and validate the runner config for `project_dir`.

    Raises:
        ConfigError: When the file exists but cannot be parsed or validated.
    """
    config, err = load_runner_config(project_dir)
    if err:
        raise ConfigError(f"Unable to read runner config: {err}")
    return build_settings(config)
