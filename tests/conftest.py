import io
import logging
import sys
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from wrapboot.constants import CACHE_DIR, INDEX_FILE, WRAPS_DIR
from wrapboot.repository.transport import HttpTransport


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("wrapboot")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    log_stream.close()


@pytest.fixture
def isolated_imports():
    """Undo sys.path and sys.modules changes made by loading package modules."""
    saved_path = list(sys.path)
    saved_modules = set(sys.modules)
    yield
    sys.path[:] = saved_path
    for name in set(sys.modules) - saved_modules:
        del sys.modules[name]


# package fixtures

PLAIN_MODULE = 'PACKAGE = "{name}"\n'

STRUCTURED_RUNNER = '''\
from typing import Mapping

LAST_ENV = None


class {class_name}:
    @staticmethod
    def main(env: Mapping[str, object]) -> int:
        global LAST_ENV
        LAST_ENV = dict(env)
        return {result}
'''

LEGACY_RUNNER = '''\
LAST_ARGS = None
SYSTEM_PATH = None


class {class_name}:
    @staticmethod
    def set_system_repository_path(path):
        global SYSTEM_PATH
        SYSTEM_PATH = path

    @staticmethod
    def main(args: list) -> int:
        global LAST_ARGS
        LAST_ARGS = list(args)
        return {result}
'''


def module_name_for(package_name: str) -> str:
    return package_name.replace("-", "_").replace(".", "_")


def package_files(
    name: str,
    version: str,
    depends: Iterable[str] = (),
    modules: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Relative path -> content of an expanded package."""
    lines = [f"name: {name}", f"version: {version}"]
    lines += [f"depends: {d}" for d in depends]
    files = {f"{name}.wrapdesc": "\n".join(lines) + "\n"}
    if modules is None:
        modules = {f"{module_name_for(name)}.py": PLAIN_MODULE.format(name=name)}
    for file_name, source in modules.items():
        files[f"bin-py3/{file_name}"] = source
    return files


def write_package_dir(target: Path, files: Dict[str, str]) -> Path:
    for relative, content in files.items():
        path = target / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return target


def write_wrap(archive: Path, files: Dict[str, str]) -> Path:
    archive.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "w") as zf:
        for relative, content in files.items():
            zf.writestr(relative, content)
    return archive


def install_local(root: Path, name: str, version: str, depends=(), modules=None) -> Path:
    """Expand a package straight into <root>/wraps/_cache."""
    target = root / WRAPS_DIR / CACHE_DIR / f"{name}-{version}"
    return write_package_dir(target, package_files(name, version, depends, modules))


class RemoteRepo:
    """A package server on the local filesystem, reachable through file:// links."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.entries: List[tuple] = []

    @property
    def href(self) -> str:
        return self.root.as_uri() + "/"

    def add(self, name, version, depends=(), modules=None, plain=False) -> Path:
        archive = write_wrap(
            self.root / f"{name}-{version}.wrap",
            package_files(name, version, depends, modules),
        )
        self.entries.append((name, version, tuple(depends)))
        self.write_index(plain=plain)
        return archive

    def write_index(self, plain: bool = False) -> Path:
        if plain:
            text = "".join(f"{n}-{v}.wrap\n" for n, v, _ in self.entries)
        else:
            wraps = []
            for name, version, depends in self.entries:
                deps = "".join(f"<depends>{d}</depends>" for d in depends)
                wraps.append(
                    f'<wrap name="{name}" version="{version}">'
                    f'<link rel="package" href="{name}-{version}.wrap" />{deps}</wrap>'
                )
            text = "<package-list>" + "".join(wraps) + "</package-list>"
        path = self.root / INDEX_FILE
        path.write_text(text)
        return path


class CountingTransport(HttpTransport):
    """HttpTransport recording every index read and archive download."""

    def __init__(self):
        super().__init__()
        self.index_reads: List[str] = []
        self.downloads: List[str] = []

    def fetch_text(self, url: str) -> str:
        self.index_reads.append(url)
        return super().fetch_text(url)

    def download(self, url: str, destination: Path) -> Path:
        self.downloads.append(url)
        return super().download(url, destination)


@pytest.fixture
def remote(tmp_path) -> RemoteRepo:
    return RemoteRepo(tmp_path / "remote")


@pytest.fixture
def transport() -> CountingTransport:
    return CountingTransport()


@pytest.fixture
def system_root(tmp_path) -> Path:
    root = tmp_path / "system"
    root.mkdir()
    return root


@pytest.fixture
def project_dir(tmp_path) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def packages():
    """Helpers for building package directories and archives."""

    class Packages:
        files = staticmethod(package_files)
        write_dir = staticmethod(write_package_dir)
        write_wrap = staticmethod(write_wrap)
        install_local = staticmethod(install_local)
        module_name_for = staticmethod(module_name_for)
        structured_runner = STRUCTURED_RUNNER
        legacy_runner = LEGACY_RUNNER
        plain_module = PLAIN_MODULE

    return Packages
