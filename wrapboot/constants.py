from enum import Enum, IntEnum


class BootstrapResult(IntEnum):
    """Closed set of process outcomes produced by the bootstrapper."""

    SUCCESS = 0
    BOOTSTRAP_FAILED = -1
    RUN_FAILED = -2
    ENTRYPOINT_NOT_FOUND = -3


class InstallAction(str, Enum):
    """How to install the bootstrapper when it is missing from the system root."""

    INSTALL_TO_DEFAULT_LOCATION = "install"
    USE_CURRENT_EXECUTABLE_LOCATION = "current"
    NONE = "none"

    @classmethod
    def from_prefix(cls, value: str):
        """Match a user-supplied value against action names and values by prefix."""
        value = value.strip().lower().replace("-", "").replace("_", "")
        if not value:
            return None
        for action in cls:
            name = action.name.lower().replace("_", "")
            if action.value.startswith(value) or name.startswith(value):
                return action
        return None


class Tier(str, Enum):
    """Repository tiers, in lookup precedence order."""

    PROJECT = "project"
    SYSTEM = "system"
    REMOTE = "remote"


# Repository layout
WRAPS_DIR = "wraps"
CACHE_DIR = "_cache"
ARCHIVE_SUFFIX = ".wrap"
DESCRIPTOR_SUFFIX = ".wrapdesc"
INDEX_FILE = "index.wraplist"
LINK_SUFFIX = ".link"
VERSION_SUFFIX = ".version"

# Module files shipped inside packages
MODULE_SUFFIX = ".py"
RUNTIME_FOLDER_GLOB = "bin-*"

# Entry point discovery
ENTRYPOINT_CLASS_SUFFIX = "Runner"
ENTRYPOINT_METHOD = "main"
LEGACY_SYSPATH_METHOD = "set_system_repository_path"
ENTRYPOINT_RECORD_SUFFIX = ".entrypoint"
ENTRYPOINT_RECORD_VERSION = 1

# Keys of the structured invocation context
CONTEXT_SYSPATH = "wrapboot.syspath"
CONTEXT_CWD = "wrapboot.cd"
CONTEXT_COMMANDLINE = "wrapboot.shell.commandline"
CONTEXT_MODULES = "wrapboot.shell.modules"
CONTEXT_VERSION = "wrapboot.shell.version"
CONTEXT_ARGS = "wrapboot.shell.args"

DEFAULT_REMOTE_HREF = "https://wraps.openwrap.org/"
DEFAULT_PACKAGES = ("openwrap",)
DEFAULT_EXECUTABLE_NAME = "wrapboot"
DEFAULT_TIMEOUT = 30.0
