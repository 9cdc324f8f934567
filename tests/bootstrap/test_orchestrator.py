"""Tests for the bootstrap state machine."""

import sys
from unittest.mock import MagicMock

import pytest

from wrapboot.bootstrap import (
    BootstrapOrchestrator,
    BootstrapState,
    ConsoleNotifier,
    SelfInstaller,
    write_version,
)
from wrapboot.config import BootstrapSettings
from wrapboot.constants import BootstrapResult, InstallAction
from wrapboot.exceptions import PackageNotFoundError, SelfCheckError
from wrapboot.versioning import SemanticVersion

pytestmark = pytest.mark.usefixtures("isolated_imports")

S = BootstrapState


@pytest.fixture
def notifier():
    notifier = MagicMock(spec=ConsoleNotifier)
    notifier.bootstrapping_failed.return_value = BootstrapResult.BOOTSTRAP_FAILED
    notifier.run_failed.return_value = BootstrapResult.RUN_FAILED
    notifier.install_options.return_value = InstallAction.NONE
    return notifier


@pytest.fixture
def installed(system_root):
    executable = system_root / "wrapboot"
    executable.write_text("")
    write_version(executable, SemanticVersion("0.3.0"))
    return executable


@pytest.fixture
def mock_installer(system_root):
    installer = MagicMock(spec=SelfInstaller)
    installer.installed_path = system_root / "wrapboot"
    installer.link_path = system_root / "wrapboot.link"
    return installer


@pytest.fixture
def make_orchestrator(system_root, project_dir, remote, transport, notifier):
    def make(names=("wbtest-tool",), args=(), consumed=(), installer=None, version="0.3.0", **settings):
        remote.write_index()
        bootstrap_settings = BootstrapSettings(
            system_root=system_root,
            remote_href=remote.href,
            packages=names,
            **settings,
        )
        return BootstrapOrchestrator(
            bootstrap_settings,
            args=args,
            consumed_args=consumed,
            notifier=notifier,
            installer=installer,
            transport=transport,
            cwd=project_dir,
            command_line="wrapboot build -ShellPanic",
            version=SemanticVersion(version),
        )

    return make


def tool_module(packages, result=0, legacy=False):
    template = packages.legacy_runner if legacy else packages.structured_runner
    return {"wbtest_tool.py": template.format(class_name="WbtestRunner", result=result)}


@pytest.mark.short
class TestRun:
    def test_ready_run_invokes_structured_entry_point(
        self, make_orchestrator, remote, packages, installed, system_root, project_dir
    ):
        remote.add("wbtest-tool", "1.0", depends=["wbtest-lib"], modules=tool_module(packages, result=5))
        remote.add("wbtest-lib", "2.0")
        orchestrator = make_orchestrator(args=["build"], consumed=["ShellPanic"])

        assert orchestrator.run() == 5

        assert orchestrator.history == [
            S.UNINITIALIZED,
            S.SELF_CHECK,
            S.READY,
            S.RESOLVING,
            S.FETCHING,
            S.LOCATING,
            S.INVOKING,
            S.DONE,
        ]
        env = sys.modules["wbtest_tool"].LAST_ENV
        assert env["wrapboot.syspath"] == str(system_root)
        assert env["wrapboot.cd"] == str(project_dir)
        assert env["wrapboot.shell.commandline"] == "wrapboot build -ShellPanic"
        assert env["wrapboot.shell.version"] == "0.3.0"
        assert env["wrapboot.shell.args"] == ["ShellPanic"]
        assert [p.rsplit("/", 1)[-1] for p in env["wrapboot.shell.modules"]] == [
            "wbtest_tool.py",
            "wbtest_lib.py",
        ]

    def test_context_keys_are_case_insensitive(self, make_orchestrator, installed):
        context = make_orchestrator().context([])
        assert context["WRAPBOOT.SYSPATH"] == context["wrapboot.syspath"]

    def test_entry_point_version_is_reported(self, make_orchestrator, remote, packages, installed, notifier):
        remote.add("wbtest-tool", "1.4", modules=tool_module(packages))

        make_orchestrator().run()

        entry_file, version = notifier.bootstrapper_is.call_args.args
        assert entry_file.endswith("wbtest_tool.py")
        assert version == SemanticVersion("1.4")

    def test_legacy_entry_point_gets_remaining_args(
        self, make_orchestrator, remote, packages, installed, system_root
    ):
        remote.add("wbtest-tool", "1.0", modules=tool_module(packages, result=-7, legacy=True))

        assert make_orchestrator(args=["build", "--verbose"]).run() == -7

        module = sys.modules["wbtest_tool"]
        assert module.LAST_ARGS == ["build", "--verbose"]
        assert module.SYSTEM_PATH == str(system_root)

    def test_second_run_uses_system_cache(self, make_orchestrator, remote, packages, installed, transport):
        remote.add("wbtest-tool", "1.0", modules=tool_module(packages))
        make_orchestrator().run()
        downloads = list(transport.downloads)

        assert make_orchestrator().run() == 0
        assert transport.downloads == downloads

    def test_use_system_ignores_project_repository(
        self, make_orchestrator, remote, packages, installed, project_dir
    ):
        packages.install_local(project_dir, "wbtest-tool", "9.0", modules=tool_module(packages, result=9))
        remote.add("wbtest-tool", "1.0", modules=tool_module(packages, result=1))

        assert make_orchestrator(use_system=True).run() == 1


@pytest.mark.short
class TestFailures:
    def test_missing_package_is_a_run_failure(self, make_orchestrator, installed, notifier):
        orchestrator = make_orchestrator()

        assert orchestrator.run() == BootstrapResult.RUN_FAILED

        assert orchestrator.history[-1] is S.FAILED
        (error,) = notifier.run_failed.call_args.args
        assert isinstance(error, PackageNotFoundError)

    def test_no_entry_point(self, make_orchestrator, remote, installed):
        remote.add("wbtest-tool", "1.0")
        orchestrator = make_orchestrator()

        assert orchestrator.run() == BootstrapResult.ENTRYPOINT_NOT_FOUND
        assert orchestrator.history[-2:] == [S.LOCATING, S.FAILED]

    def test_entry_point_exception_is_a_run_failure(self, make_orchestrator, remote, installed, notifier):
        source = "class WbtestRunner:\n    @staticmethod\n    def main(env):\n        raise KeyError('boom')\n"
        remote.add("wbtest-tool", "1.0", modules={"wbtest_tool.py": source})
        orchestrator = make_orchestrator()

        assert orchestrator.run() == BootstrapResult.RUN_FAILED
        assert S.INVOKING in orchestrator.history
        notifier.run_failed.assert_called_once()

    def test_self_check_failure(self, make_orchestrator, mock_installer, notifier):
        mock_installer.install.side_effect = SelfCheckError("read-only system root")
        orchestrator = make_orchestrator(
            installer=mock_installer, install_action="install"
        )

        assert orchestrator.run() == BootstrapResult.BOOTSTRAP_FAILED

        assert orchestrator.history == [S.UNINITIALIZED, S.SELF_CHECK, S.INSTALLING, S.FAILED]
        notifier.bootstrapping_failed.assert_called_once()
        notifier.run_failed.assert_not_called()


@pytest.mark.short
class TestSelfCheck:
    def test_configured_install_action(self, make_orchestrator, mock_installer, notifier):
        orchestrator = make_orchestrator(installer=mock_installer, install_action="inst")

        orchestrator.self_check()

        mock_installer.install.assert_called_once_with(InstallAction.INSTALL_TO_DEFAULT_LOCATION)
        notifier.install_options.assert_not_called()
        assert orchestrator.history[-1] is S.INSTALLING

    def test_asks_when_no_action_configured(self, make_orchestrator, mock_installer, notifier):
        notifier.install_options.return_value = InstallAction.USE_CURRENT_EXECUTABLE_LOCATION

        make_orchestrator(installer=mock_installer).self_check()

        mock_installer.install.assert_called_once_with(InstallAction.USE_CURRENT_EXECUTABLE_LOCATION)

    def test_declined_install(self, make_orchestrator, mock_installer, notifier):
        make_orchestrator(installer=mock_installer).self_check()

        notifier.install_options.assert_called_once()
        mock_installer.install.assert_not_called()

    def test_upgrade_older_installation(self, make_orchestrator, mock_installer, system_root):
        mock_installer.installed_path.write_text("")
        write_version(mock_installer.installed_path, SemanticVersion("0.2.9"))
        orchestrator = make_orchestrator(installer=mock_installer)

        orchestrator.self_check()

        mock_installer.upgrade.assert_called_once_with(
            mock_installer.installed_path, SemanticVersion("0.2.9")
        )
        assert orchestrator.history[-1] is S.UPGRADING

    @pytest.mark.parametrize("installed_version", ["0.3.0", "1.0"])
    def test_same_or_newer_installation_is_ready(
        self, make_orchestrator, mock_installer, installed_version
    ):
        mock_installer.installed_path.write_text("")
        write_version(mock_installer.installed_path, SemanticVersion(installed_version))
        orchestrator = make_orchestrator(installer=mock_installer)

        orchestrator.self_check()

        mock_installer.upgrade.assert_not_called()
        assert orchestrator.history[-1] is S.READY

    def test_unknown_installed_version_is_left_alone(self, make_orchestrator, mock_installer):
        mock_installer.installed_path.write_text("")
        orchestrator = make_orchestrator(installer=mock_installer)

        orchestrator.self_check()

        mock_installer.upgrade.assert_not_called()
        assert orchestrator.history[-1] is S.READY

    def test_link_target_is_checked(self, make_orchestrator, mock_installer, tmp_path):
        target = tmp_path / "elsewhere" / "wrapboot"
        target.parent.mkdir()
        target.write_text("")
        write_version(target, SemanticVersion("0.1"))
        mock_installer.link_path.write_text(str(target))
        mock_installer.read_link.return_value = target

        make_orchestrator(installer=mock_installer).self_check()

        mock_installer.upgrade.assert_called_once_with(target, SemanticVersion("0.1"))


@pytest.mark.short
class TestPanic:
    def test_panic_refetches_only_root_packages(
        self, make_orchestrator, remote, packages, installed, system_root, transport
    ):
        remote.add("wbtest-tool", "1.0", depends=["wbtest-lib"], modules=tool_module(packages))
        remote.add("wbtest-lib", "1.0")
        make_orchestrator().run()
        wraps = system_root / "wraps"
        lib_archive = wraps / "wbtest-lib-1.0.wrap"
        lib_dir = wraps / "_cache" / "wbtest-lib-1.0"
        lib_mtime = lib_archive.stat().st_mtime_ns
        downloads = len(transport.downloads)

        assert make_orchestrator(panic=True).run() == 0

        assert transport.downloads[downloads:] == [
            remote.root.joinpath("wbtest-tool-1.0.wrap").as_uri()
        ]
        assert lib_archive.stat().st_mtime_ns == lib_mtime
        assert lib_dir.is_dir()
        assert (wraps / "wbtest-tool-1.0.wrap").is_file()
