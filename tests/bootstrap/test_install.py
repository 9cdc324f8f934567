"""Tests for installing and upgrading the bootstrapper."""

import os
from unittest.mock import MagicMock

import pytest

from wrapboot.bootstrap import PathUpdater, SelfInstaller, read_version, write_version
from wrapboot.constants import InstallAction
from wrapboot.exceptions import SelfCheckError
from wrapboot.versioning import SemanticVersion


@pytest.fixture
def executable(tmp_path):
    path = tmp_path / "dist" / "wrapboot"
    path.parent.mkdir()
    path.write_text("#!/usr/bin/env python\n")
    return path


@pytest.fixture
def path_updater():
    return MagicMock(spec=PathUpdater)


@pytest.fixture
def installer(system_root, executable, path_updater):
    return SelfInstaller(
        system_root=system_root / "root",
        executable_name="wrapboot",
        current_executable=executable,
        current_version=SemanticVersion("0.3.0"),
        path_updater=path_updater,
    )


@pytest.mark.short
class TestVersionSidecar:
    def test_round_trip(self, executable):
        write_version(executable, SemanticVersion("1.2"))
        assert read_version(executable) == SemanticVersion("1.2")
        assert (executable.parent / "wrapboot.version").is_file()

    def test_missing_or_garbage(self, executable):
        assert read_version(executable) is SemanticVersion.INVALID
        (executable.parent / "wrapboot.version").write_text("dev build")
        assert read_version(executable) is SemanticVersion.INVALID


@pytest.mark.short
class TestSelfInstaller:
    def test_install_to_default_location(self, installer, executable, path_updater):
        installer.install(InstallAction.INSTALL_TO_DEFAULT_LOCATION)

        assert installer.installed_path.read_text() == executable.read_text()
        assert read_version(installer.installed_path) == SemanticVersion("0.3.0")
        path_updater.ensure_on_path.assert_called_once_with(installer.system_root)

    def test_install_link(self, installer, executable, path_updater):
        installer.install(InstallAction.USE_CURRENT_EXECUTABLE_LOCATION)

        assert installer.link_path.name == "wrapboot.link"
        assert installer.read_link() == executable.resolve()
        assert read_version(executable) == SemanticVersion("0.3.0")
        path_updater.ensure_on_path.assert_called_once_with(executable.resolve().parent)

    def test_install_nothing(self, installer, path_updater):
        installer.install(InstallAction.NONE)
        assert not installer.system_root.exists()
        path_updater.ensure_on_path.assert_not_called()

    def test_missing_executable(self, system_root, path_updater):
        installer = SelfInstaller(
            system_root, "wrapboot", None, SemanticVersion("1.0"), path_updater
        )
        with pytest.raises(SelfCheckError):
            installer.install_to_default_location()

    def test_upgrade_replaces_installed_copy(self, installer, executable):
        installer.system_root.mkdir(parents=True)
        installer.installed_path.write_text("old")
        write_version(installer.installed_path, SemanticVersion("0.1"))

        installer.upgrade(installer.installed_path, SemanticVersion("0.1"))

        assert installer.installed_path.read_text() == executable.read_text()
        assert read_version(installer.installed_path) == SemanticVersion("0.3.0")


@pytest.mark.short
class TestPathUpdater:
    def test_adds_missing_directory_once(self, tmp_path):
        environ = {"PATH": os.pathsep.join(["/usr/bin", "/bin"])}
        notifier = MagicMock()
        updater = PathUpdater(notifier, environ=environ)

        assert updater.ensure_on_path(tmp_path)
        assert not updater.ensure_on_path(tmp_path)

        assert environ["PATH"].split(os.pathsep) == ["/usr/bin", "/bin", str(tmp_path)]
        notifier.message.assert_called_once_with(f"Added '{tmp_path}' to PATH.")

    def test_empty_path(self, tmp_path):
        environ = {}
        PathUpdater(environ=environ).ensure_on_path(tmp_path)
        assert environ["PATH"] == str(tmp_path)
