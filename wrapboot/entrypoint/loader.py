"""Importing the modules shipped inside resolved packages."""

import importlib.util
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Iterable, List, Optional, Set

from wrapboot.cache.layout import package_module_files
from wrapboot.versioning import PackageIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedModule:
    path: Path
    module: ModuleType
    package: Optional[PackageIdentity] = None

    @property
    def name(self) -> str:
        return self.module.__name__


def _same_file(module: ModuleType, path: Path) -> bool:
    module_file = getattr(module, "__file__", None)
    if not module_file:
        return False
    try:
        return Path(module_file).resolve() == path.resolve()
    except OSError:
        return False


def import_module_file(path: Path) -> ModuleType:
    """
    Import a single module file under its stem name.

    A module already imported from the same file is returned as is, so a
    package that imported one of its dependencies first does not get it
    executed twice. A stem naming a standard library module, or a module
    already imported from another file, is refused rather than replacing it
    in sys.modules.

    Raises:
        ImportError: If the name is taken or no loader can be created for path
        Exception: Whatever the module raises while executing
    """
    name = path.stem
    existing = sys.modules.get(name)
    if existing is not None and _same_file(existing, path):
        return existing
    if name in sys.stdlib_module_names or existing is not None:
        raise ImportError(
            f"Module name '{name}' is already taken, not loading {path}", path=str(path)
        )

    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from {path}", path=str(path))
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def load_modules(packages: Iterable) -> List[LoadedModule]:
    """
    Import every module file of the given packages.

    All module folders are appended to sys.path before anything is imported, so
    modules can import each other regardless of load order. When two files
    share a stem, the first one (newest runtime folder, earliest package)
    wins. Modules that fail to import are logged and skipped.

    Args:
        packages: ResolvedPackage instances (anything with ``identity`` and
            ``path``)

    Returns:
        Loaded modules in load order
    """
    files = []
    for package in packages:
        for module_file in package_module_files(package.path):
            files.append((module_file, package.identity))

    for module_file, _ in files:
        folder = str(module_file.parent)
        if folder not in sys.path:
            sys.path.append(folder)

    loaded: List[LoadedModule] = []
    seen: Set[str] = set()
    for module_file, identity in files:
        if module_file.stem in seen:
            logger.debug(f"Skipping {module_file}, a module with that name is already loaded")
            continue
        seen.add(module_file.stem)
        try:
            module = import_module_file(module_file)
        except Exception as e:
            logger.warning(f"Could not load module {module_file}: {e}")
            continue
        logger.debug(f"Loaded module {module.__name__} from {module_file}")
        loaded.append(LoadedModule(module_file, module, identity))
    return loaded
