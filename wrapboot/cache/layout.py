"""On-disk layout of repositories and expanded packages.

    <root>/wraps/<name>-<version>.wrap          downloaded archives
    <root>/wraps/_cache/<name>-<version>/       expanded packages
        <name>.wrapdesc                         descriptor
        bin-<runtime>/<module>.py               loadable modules
        <module>.py                             (top level, loaded last)
"""

import re
from pathlib import Path
from typing import List

from wrapboot.constants import CACHE_DIR, MODULE_SUFFIX, RUNTIME_FOLDER_GLOB, WRAPS_DIR


def wraps_dir(root: Path) -> Path:
    return Path(root) / WRAPS_DIR


def cache_dir(root: Path) -> Path:
    return wraps_dir(root) / CACHE_DIR


def _natural_key(name: str):
    return [int(t) if t.isdigit() else t.lower() for t in re.split(r"(\d+)", name)]


def runtime_folders(package_dir: Path) -> List[Path]:
    """
    Runtime-specific module folders of a package, newest runtime first.

    Example: bin-py312, bin-py39, bin-py2
    """
    if not package_dir.is_dir():
        return []
    folders = [p for p in package_dir.glob(RUNTIME_FOLDER_GLOB) if p.is_dir()]
    return sorted(folders, key=lambda p: _natural_key(p.name), reverse=True)


def package_module_files(package_dir: Path) -> List[Path]:
    """All loadable module files of an expanded package, runtime folders first."""
    modules = []
    if not package_dir.is_dir():
        return modules
    for folder in [*runtime_folders(package_dir), package_dir]:
        modules += sorted(
            p
            for p in folder.glob(f"*{MODULE_SUFFIX}")
            if p.is_file() and not p.name.startswith("_")
        )
    return modules
