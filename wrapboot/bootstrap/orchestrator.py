"""
The bootstrap run, as a small state machine.

    UNINITIALIZED -> SELF_CHECK -> INSTALLING | UPGRADING | READY
                  -> RESOLVING -> FETCHING -> LOCATING -> INVOKING -> DONE

Any state can move to FAILED. Failures during the self check end the run
with BOOTSTRAP_FAILED, anything failing afterwards with RUN_FAILED, and a run
without an entry point with ENTRYPOINT_NOT_FOUND. Otherwise the process exits
with whatever the entry point returned. Nothing is retried.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from requests.structures import CaseInsensitiveDict

from wrapboot import __version__
from wrapboot.cache.store import CacheStore
from wrapboot.config import BootstrapSettings
from wrapboot.constants import (
    CONTEXT_ARGS,
    CONTEXT_COMMANDLINE,
    CONTEXT_CWD,
    CONTEXT_MODULES,
    CONTEXT_SYSPATH,
    CONTEXT_VERSION,
    WRAPS_DIR,
    BootstrapResult,
    InstallAction,
)
from wrapboot.entrypoint import EntryPoint, EntryPointLocator, LoadedModule, load_modules
from wrapboot.repository import (
    HttpTransport,
    ProjectLocalCache,
    RemoteIndex,
    RepositorySource,
    SystemCache,
)
from wrapboot.resolver import DependencyResolver
from wrapboot.versioning import SemanticVersion, version_or_invalid

from .install import PathUpdater, SelfInstaller, read_version
from .notifier import ConsoleNotifier, Notifier

logger = logging.getLogger(__name__)


class BootstrapState(Enum):
    UNINITIALIZED = "uninitialized"
    SELF_CHECK = "self-check"
    INSTALLING = "installing"
    UPGRADING = "upgrading"
    READY = "ready"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    LOCATING = "locating"
    INVOKING = "invoking"
    DONE = "done"
    FAILED = "failed"


class BootstrapOrchestrator:
    """
    Runs one bootstrap: self check, package resolution, entry point invocation.

    Args:
        settings: Merged configuration and command line settings
        args: Command line arguments left for the tool
        consumed_args: Names of the bootstrap flags that were consumed
        notifier: User-facing notifications (console by default)
        installer: Self-install collaborator (built from settings by default)
        transport: Transport for the remote index (built from settings by default)
        cwd: Directory the project repository is searched from
        command_line: The raw command line, handed to structured entry points
        current_executable: The running bootstrapper executable, if known
        version: Version of the running bootstrapper
    """

    def __init__(
        self,
        settings: BootstrapSettings,
        args: Sequence[str] = (),
        consumed_args: Sequence[str] = (),
        notifier: Optional[Notifier] = None,
        installer: Optional[SelfInstaller] = None,
        transport: Optional[HttpTransport] = None,
        cwd: Optional[Path] = None,
        command_line: str = "",
        current_executable: Optional[Path] = None,
        version: Optional[SemanticVersion] = None,
    ):
        self.settings = settings
        self.args = list(args)
        self.consumed_args = list(consumed_args)
        self.notifier = notifier or ConsoleNotifier()
        self.cwd = Path(cwd) if cwd else Path(os.getcwd())
        self.command_line = command_line
        self.version = version or version_or_invalid(__version__)
        self.transport = transport or HttpTransport(
            proxy=settings.proxy_href,
            proxy_username=settings.proxy_username,
            proxy_password=settings.proxy_password,
            timeout=settings.timeout,
            listener=self.notifier,
        )
        self.installer = installer or SelfInstaller(
            system_root=settings.system_root,
            executable_name=settings.executable_name,
            current_executable=current_executable,
            current_version=self.version,
            path_updater=PathUpdater(self.notifier),
            notifier=self.notifier,
        )
        self.store = CacheStore(settings.system_root / WRAPS_DIR)
        self.state = BootstrapState.UNINITIALIZED
        self.history: List[BootstrapState] = [self.state]

    def _transition(self, state: BootstrapState) -> None:
        logger.debug(f"Bootstrap state {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def run(self) -> int:
        self._transition(BootstrapState.SELF_CHECK)
        try:
            self.self_check()
        except Exception as e:
            self._transition(BootstrapState.FAILED)
            return self.notifier.bootstrapping_failed(e)

        try:
            return self.run_packages()
        except Exception as e:
            self._transition(BootstrapState.FAILED)
            return self.notifier.run_failed(e)

    # self check

    def self_check(self) -> None:
        """Make sure the bootstrapper is installed in the system root and up to date."""
        installer = self.installer
        if installer.installed_path.is_file():
            self._check_upgrade(installer.installed_path)
        elif installer.link_path.is_file():
            self._check_upgrade(installer.read_link())
        else:
            self._transition(BootstrapState.INSTALLING)
            action = self.settings.install_action or self.notifier.install_options()
            logger.debug(f"Install action: {action.name}")
            if action is not InstallAction.NONE:
                installer.install(action)

    def _check_upgrade(self, installed: Path) -> None:
        installed_version = read_version(installed)
        if not installed_version.is_valid:
            logger.debug(f"Version of {installed} is unknown, not upgrading")
        elif self.version > installed_version:
            self._transition(BootstrapState.UPGRADING)
            self.installer.upgrade(installed, installed_version)
            return
        self._transition(BootstrapState.READY)

    # packages

    def build_sources(self) -> List[RepositorySource]:
        sources: List[RepositorySource] = []
        if not self.settings.use_system:
            sources.append(ProjectLocalCache(self.cwd))
        sources.append(SystemCache(self.settings.system_root, store=self.store))
        sources.append(RemoteIndex(self.settings.remote_href, self.transport))
        return sources

    def panic(self) -> List[Path]:
        """Remove every system copy of the root packages so they are downloaded again."""
        return self.store.purge(self.settings.packages)

    def run_packages(self) -> int:
        forced_remote = ()
        if self.settings.panic:
            self.panic()
            forced_remote = self.settings.packages

        self._transition(BootstrapState.RESOLVING)
        resolver = DependencyResolver(self.build_sources(), self.store, forced_remote)
        packages = resolver.plan(self.settings.packages)

        self._transition(BootstrapState.FETCHING)
        packages = resolver.fetch(packages)
        for package in packages:
            logger.debug(f"Detected package {package.path}")

        self._transition(BootstrapState.LOCATING)
        modules = load_modules(packages)
        entry_point = EntryPointLocator(self.settings.packages[0]).locate(modules)
        if entry_point is None:
            self._transition(BootstrapState.FAILED)
            self.notifier.message(
                f"No entry point found in the modules of {', '.join(self.settings.packages)}."
            )
            return BootstrapResult.ENTRYPOINT_NOT_FOUND

        self.notifier.bootstrapper_is(
            str(entry_point.module.path), self._entry_point_version(entry_point)
        )
        self._transition(BootstrapState.INVOKING)
        result = entry_point.invoke(
            self.context(modules), self.args, system_root=self.settings.system_root
        )
        self._transition(BootstrapState.DONE)
        return result

    def _entry_point_version(self, entry_point: EntryPoint) -> Optional[SemanticVersion]:
        declared = getattr(entry_point.module.module, "__version__", None)
        if isinstance(declared, str) and version_or_invalid(declared).is_valid:
            return version_or_invalid(declared)
        if entry_point.module.package is not None:
            return entry_point.module.package.version
        return None

    def context(self, modules: Sequence[LoadedModule]) -> CaseInsensitiveDict:
        """The mapping handed to structured entry points; keys are case-insensitive."""
        return CaseInsensitiveDict(
            {
                CONTEXT_SYSPATH: str(self.settings.system_root),
                CONTEXT_CWD: str(self.cwd),
                CONTEXT_COMMANDLINE: self.command_line,
                CONTEXT_MODULES: [str(m.path) for m in modules],
                CONTEXT_VERSION: str(self.version),
                CONTEXT_ARGS: list(self.consumed_args),
            }
        )
