"""User-facing notifications of a bootstrap run."""

import traceback
from typing import Optional, Protocol

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from wrapboot.constants import BootstrapResult, InstallAction
from wrapboot.versioning import SemanticVersion


class Notifier(Protocol):
    """
    Everything the orchestrator tells the user or asks them.

    The failure callbacks return the result code the run ends with, so the
    orchestrator can ``return notifier.run_failed(e)``.
    """

    def bootstrapping_failed(self, exception: BaseException) -> BootstrapResult: ...

    def run_failed(self, exception: BaseException) -> BootstrapResult: ...

    def bootstrapper_is(self, entry_point_file: str, version: Optional[SemanticVersion]) -> None: ...

    def install_options(self) -> InstallAction: ...

    def message(self, message: str) -> None: ...

    def download_start(self, url: str) -> None: ...

    def download_progress(self, percentage: int) -> None: ...

    def download_end(self) -> None: ...


_INSTALL_CHOICES = {
    "i": InstallAction.INSTALL_TO_DEFAULT_LOCATION,
    "c": InstallAction.USE_CURRENT_EXECUTABLE_LOCATION,
    "n": InstallAction.NONE,
}


class ConsoleNotifier:
    """Notifier printing to the terminal with rich."""

    def __init__(self, console: Optional[Console] = None, interactive: bool = True):
        self.console = console or Console()
        self.interactive = interactive
        self._progress: Optional[Progress] = None
        self._task = None

    def bootstrapper_is(self, entry_point_file: str, version: Optional[SemanticVersion]) -> None:
        shown = version if version is not None and version.is_valid else "unknown"
        self.console.print(f"# wrapboot v{shown} ['{entry_point_file}']", highlight=False)

    def bootstrapping_failed(self, exception: BaseException) -> BootstrapResult:
        self.console.print("[red]Bootstrapping failed.[/red]")
        self._print_exception(exception)
        return BootstrapResult.BOOTSTRAP_FAILED

    def run_failed(self, exception: BaseException) -> BootstrapResult:
        self.console.print("[red]The tool could not be started.[/red]")
        self.console.print(str(exception), highlight=False)
        self._print_exception(exception)
        return BootstrapResult.RUN_FAILED

    def _print_exception(self, exception: BaseException) -> None:
        formatted = "".join(
            traceback.format_exception(type(exception), exception, exception.__traceback__)
        )
        self.console.print(formatted, style="dim", highlight=False, markup=False)

    def install_options(self) -> InstallAction:
        if not self.interactive:
            return InstallAction.NONE
        self.console.print("The bootstrapper is not installed on this machine. Do you want to:")
        self.console.print("(i) install it and make it available on the path?")
        self.console.print("(c) use the current executable location and make it available on the path?")
        self.console.print("(n) do nothing?")
        answer = click.prompt(
            "Choice",
            type=click.Choice(list(_INSTALL_CHOICES), case_sensitive=False),
            default="n",
            show_choices=False,
        )
        return _INSTALL_CHOICES[answer.lower()]

    def message(self, message: str) -> None:
        self.console.print(message, highlight=False, markup=False)

    def download_start(self, url: str) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._progress.start()
        self._task = self._progress.add_task(f"Downloading {url}", total=100)

    def download_progress(self, percentage: int) -> None:
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, completed=percentage)

    def download_end(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None
