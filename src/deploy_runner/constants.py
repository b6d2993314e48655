STATE_DIR_NAME = ".deploy_runner"
CONFIG_FILE = "config.yaml"

EVENT_BEFORE = "before"
EVENT_AFTER = "after"
HOOK_EVENTS = (EVENT_BEFORE, EVENT_AFTER)

# Stage name meaning "every configured stage"
ALL_STAGES = "all"

DEFAULT_HOOK_DEPTH = 1  # Listeners of queued tasks only; hooks of hooks are opt-in
DEFAULT_COMMAND_TIMEOUT_SECONDS = 600
DEFAULT_SSH_PORT = 22
DEFAULT_CONNECTION_NAME = "local"

CONNECTION_TYPE_LOCAL = "local"
CONNECTION_TYPE_SSH = "ssh"
CONNECTION_TYPE_PRETEND = "pretend"

RELEASES_DIR = "releases"
CURRENT_DIR = "current"
SHARED_DIR = "shared"
DEFAULT_KEEP_RELEASES = 4

MAX_OUTPUT_PREVIEW = 240
