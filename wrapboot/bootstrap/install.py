"""
Installing and upgrading the bootstrapper in the system root.

The system root holds either a copy of the bootstrapper executable or a
``<name>.link`` file whose content is the path of an executable living
elsewhere. A ``<executable>.version`` sidecar next to each installed copy
records the version that was installed, which is what upgrades compare to.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import MutableMapping, Optional

from wrapboot.constants import LINK_SUFFIX, VERSION_SUFFIX, InstallAction
from wrapboot.exceptions import SelfCheckError
from wrapboot.versioning import SemanticVersion, version_or_invalid

logger = logging.getLogger(__name__)


def version_file_for(executable: Path) -> Path:
    return executable.with_name(executable.name + VERSION_SUFFIX)


def read_version(executable: Path) -> SemanticVersion:
    """Version recorded next to executable, or SemanticVersion.INVALID."""
    try:
        text = version_file_for(executable).read_text(encoding="utf-8")
    except OSError:
        return SemanticVersion.INVALID
    return version_or_invalid(text.strip())


def write_version(executable: Path, version: SemanticVersion) -> None:
    version_file_for(executable).write_text(f"{version}\n", encoding="utf-8")


class PathUpdater:
    """
    Makes a directory available on PATH.

    Only the environment of the current process (and the processes it
    starts) is changed; the message tells the user what was added.
    """

    def __init__(self, notifier=None, environ: Optional[MutableMapping[str, str]] = None):
        self.notifier = notifier
        self.environ = os.environ if environ is None else environ

    def ensure_on_path(self, directory: Path) -> bool:
        """
        Returns:
            True if PATH was changed, False if the directory was already on it
        """
        current = self.environ.get("PATH", "")
        entries = [e for e in current.split(os.pathsep) if e]
        target = str(directory)
        if any(os.path.normcase(e) == os.path.normcase(target) for e in entries):
            return False
        self.environ["PATH"] = os.pathsep.join(entries + [target])
        message = f"Added '{target}' to PATH."
        if self.notifier is not None:
            self.notifier.message(message)
        else:
            logger.info(message)
        return True


class SelfInstaller:
    """
    Performs the filesystem side of installing and upgrading the bootstrapper.

    Args:
        system_root: System repository root the bootstrapper is installed into
        executable_name: File name of the installed bootstrapper
        current_executable: The executable currently running, if known
        current_version: Version of the running bootstrapper
        path_updater: Collaborator putting directories on PATH
        notifier: Receives user-facing messages
    """

    def __init__(
        self,
        system_root: Path,
        executable_name: str,
        current_executable: Optional[Path],
        current_version: SemanticVersion,
        path_updater: PathUpdater,
        notifier=None,
    ):
        self.system_root = Path(system_root)
        self.executable_name = executable_name
        self.current_executable = Path(current_executable) if current_executable else None
        self.current_version = current_version
        self.path_updater = path_updater
        self.notifier = notifier

    @property
    def installed_path(self) -> Path:
        return self.system_root / self.executable_name

    @property
    def link_path(self) -> Path:
        return self.system_root / (self.executable_name + LINK_SUFFIX)

    def _message(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier.message(message)
        else:
            logger.info(message)

    def _require_current_executable(self) -> Path:
        if self.current_executable is None or not self.current_executable.is_file():
            raise SelfCheckError(
                f"Couldn't find the bootstrapper executable ({self.current_executable})."
            )
        return self.current_executable

    def read_link(self) -> Path:
        """Target of the link file, without checking that it exists."""
        try:
            return Path(self.link_path.read_text(encoding="utf-8").strip())
        except OSError as e:
            raise SelfCheckError(f"Cannot read {self.link_path}: {e}") from e

    def install(self, action: InstallAction) -> None:
        if action is InstallAction.INSTALL_TO_DEFAULT_LOCATION:
            self.install_to_default_location()
        elif action is InstallAction.USE_CURRENT_EXECUTABLE_LOCATION:
            self.install_link()
        else:
            logger.debug("Not installing the bootstrapper")

    def install_to_default_location(self) -> Path:
        source = self._require_current_executable()
        self._message(f"Installing the bootstrapper to '{self.system_root}'.")
        try:
            self.system_root.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, self.installed_path)
            write_version(self.installed_path, self.current_version)
        except OSError as e:
            raise SelfCheckError(f"Could not install to {self.installed_path}: {e}") from e
        self.path_updater.ensure_on_path(self.system_root)
        return self.installed_path

    def install_link(self) -> Path:
        source = self._require_current_executable()
        try:
            self.system_root.mkdir(parents=True, exist_ok=True)
            self.link_path.write_text(str(source.resolve()), encoding="utf-8")
            write_version(source, self.current_version)
        except OSError as e:
            raise SelfCheckError(f"Could not write {self.link_path}: {e}") from e
        self.path_updater.ensure_on_path(source.resolve().parent)
        return self.link_path

    def upgrade(self, target: Path, installed_version: SemanticVersion) -> None:
        """Replace the installed bootstrapper at target with the running one."""
        source = self._require_current_executable()
        self._message(f"Upgrading '{installed_version}' => '{self.current_version}'")
        try:
            if source.resolve() != Path(target).resolve():
                shutil.copy2(source, target)
            write_version(Path(target), self.current_version)
        except OSError as e:
            raise SelfCheckError(f"Could not upgrade {target}: {e}") from e
