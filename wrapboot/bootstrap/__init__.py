from .install import PathUpdater, SelfInstaller, read_version, write_version
from .notifier import ConsoleNotifier, Notifier
from .orchestrator import BootstrapOrchestrator, BootstrapState

__all__ = [
    "BootstrapOrchestrator",
    "BootstrapState",
    "ConsoleNotifier",
    "Notifier",
    "PathUpdater",
    "SelfInstaller",
    "read_version",
    "write_version",
]
