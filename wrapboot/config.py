"""Configuration: XDG locations, the config file and validated bootstrap settings"""

import configparser
import logging
import os
import platform
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wrapboot.constants import (
    DEFAULT_EXECUTABLE_NAME,
    DEFAULT_PACKAGES,
    DEFAULT_REMOTE_HREF,
    DEFAULT_TIMEOUT,
    InstallAction,
)

logger = logging.getLogger(__name__)

APP_NAME = "wrapboot"
SYSTEM_ROOT_ENV = "WRAPBOOT_SYSTEM_ROOT"


def _xdg_home(variable: str, fallback: str) -> Path:
    value = os.environ.get(variable)
    return Path(value) if value else Path.home() / fallback


def config_dir() -> Path:
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    return _xdg_home("XDG_CONFIG_HOME", ".config") / APP_NAME


def data_dir() -> Path:
    if platform.system() == "Darwin":
        return config_dir()
    return _xdg_home("XDG_DATA_HOME", ".local/share") / APP_NAME


def get_config_file() -> Path:
    return config_dir() / f"{APP_NAME}.cfg"


def default_system_root() -> Path:
    """The system repository root: $WRAPBOOT_SYSTEM_ROOT, else the XDG data dir."""
    override = os.environ.get(SYSTEM_ROOT_ENV)
    if override:
        return Path(override).expanduser()
    return data_dir()


# Settings field -> (section, key) in the configuration file
CONFIG_KEYS = {
    "remote_href": ("remote", "href"),
    "timeout": ("remote", "timeout"),
    "proxy_href": ("remote", "proxy"),
    "system_root": ("dirs", "system_root"),
    "packages": ("bootstrap", "packages"),
    "executable_name": ("bootstrap", "executable"),
}


class ConfigAccessor:
    """
    Read access to the user's wrapboot.cfg.

    A missing or unreadable file behaves like an empty one; bootstrapping
    never fails because of the configuration file alone.

    Usage:
        config = ConfigAccessor()
        href = config.get("remote", "href", default=DEFAULT_REMOTE_HREF)
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else get_config_file()
        self.parser = configparser.ConfigParser(interpolation=None)
        if not self.config_path.is_file():
            logger.debug(f"No configuration file at {self.config_path}")
            return
        try:
            self.parser.read(self.config_path, encoding="utf-8")
        except (configparser.Error, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable configuration {self.config_path}: {e}")
            self.parser = configparser.ConfigParser(interpolation=None)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        return self.parser.get(section, key, fallback=default)

    def settings_values(self) -> Dict[str, str]:
        """The non-empty values the file sets, keyed by settings field."""
        values = {}
        for field, (section, key) in CONFIG_KEYS.items():
            value = self.get(section, key)
            if value is not None and value.strip():
                values[field] = value.strip()
        return values


class BootstrapSettings(BaseModel):
    """Everything a bootstrap run needs to know, after merging all sources."""

    model_config = ConfigDict(frozen=True)

    system_root: Path = Field(default_factory=default_system_root)
    remote_href: str = DEFAULT_REMOTE_HREF
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    proxy_href: Optional[str] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None
    packages: Tuple[str, ...] = DEFAULT_PACKAGES
    executable_name: str = DEFAULT_EXECUTABLE_NAME
    install_action: Optional[InstallAction] = None
    panic: bool = False
    use_system: bool = False
    debug: bool = False

    @field_validator("system_root", mode="before")
    @classmethod
    def expand_system_root(cls, v):
        return Path(v).expanduser() if isinstance(v, (str, Path)) else v

    @field_validator("packages", mode="before")
    @classmethod
    def split_packages(cls, v):
        """Accept a comma or whitespace separated string as well as a sequence."""
        if isinstance(v, str):
            v = v.replace(",", " ").split()
        return v

    @field_validator("packages")
    @classmethod
    def packages_not_empty(cls, v):
        if not v:
            raise ValueError("At least one package to load is required")
        return v

    @field_validator("install_action", mode="before")
    @classmethod
    def match_install_action(cls, v):
        """Match install actions by prefix; unknown values mean "ask"."""
        if isinstance(v, str):
            return InstallAction.from_prefix(v)
        return v


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    config: Optional[ConfigAccessor] = None,
) -> BootstrapSettings:
    """
    Build settings from defaults, the config file and command line overrides.

    Precedence, lowest first: defaults, config file, $WRAPBOOT_SYSTEM_ROOT
    (system root only), command line.

    Args:
        overrides: Values taken from the command line; None values are ignored
        config: Accessor to read the config file from (defaults to the user's)

    Returns:
        Validated settings

    Raises:
        pydantic.ValidationError: If a merged value is invalid
    """
    config = config or ConfigAccessor()
    values: Dict[str, Any] = dict(config.settings_values())
    if os.environ.get(SYSTEM_ROOT_ENV):
        values["system_root"] = os.environ[SYSTEM_ROOT_ENV]
    for field, value in (overrides or {}).items():
        if value is not None:
            values[field] = value
    return BootstrapSettings(**values)
