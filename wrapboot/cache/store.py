"""
Package cache store.

The store owns one repository's ``wraps`` directory: downloaded ``.wrap``
archives live at its top level and expanded packages under ``_cache``. A
package counts as materialized when its ``_cache/<name>-<version>`` directory
exists and is valid (it holds a parsable descriptor and at least one module
file). Anything else found at that path is treated as corrupt and removed.

Materialization is atomic from the point of view of readers: archives are
expanded into a hidden staging directory next to the target and renamed into
place only once they validate, so a half-written package directory is never
observable under its final name.

The store assumes a single bootstrap process owns the tree for the duration
of a run; concurrent runs against the same cache are not supported.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, TYPE_CHECKING

from wrapboot.constants import ARCHIVE_SUFFIX, CACHE_DIR
from wrapboot.exceptions import ExtractionError, FetchError
from wrapboot.model.descriptor import try_read_descriptor
from wrapboot.versioning import PackageIdentity

from .archive import Extractor, extract_archive
from .layout import package_module_files

if TYPE_CHECKING:
    from wrapboot.repository.sources import RepositorySource

logger = logging.getLogger(__name__)


class CacheStore:
    """Maps package identities to expanded directories under a wraps folder."""

    def __init__(self, wraps_dir: Path, extractor: Optional[Extractor] = None):
        """
        Args:
            wraps_dir: The repository's wraps directory (archives + _cache)
            extractor: Callable expanding an archive into a directory;
                defaults to zip extraction
        """
        self.wraps_dir = Path(wraps_dir)
        self.extractor = extractor or extract_archive

    @property
    def cache_dir(self) -> Path:
        return self.wraps_dir / CACHE_DIR

    def path_for(self, identity: PackageIdentity) -> Path:
        return self.cache_dir / identity.folder_name

    def archive_path_for(self, identity: PackageIdentity) -> Path:
        return self.wraps_dir / identity.archive_name

    def folder_names(self) -> List[str]:
        """Names of the visible package directories under _cache."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(
            p.name
            for p in self.cache_dir.iterdir()
            if p.is_dir() and not p.name.startswith(".")
        )

    @staticmethod
    def validate(package_dir: Path) -> bool:
        """True if package_dir holds a readable descriptor and at least one module file."""
        if not package_dir.is_dir():
            return False
        if try_read_descriptor(package_dir) is None:
            return False
        return bool(package_module_files(package_dir))

    def is_materialized(self, identity: PackageIdentity) -> bool:
        return self.validate(self.path_for(identity))

    def discard(self, package_dir: Path) -> None:
        """Remove a corrupt or stale package directory."""
        logger.warning(f"Removing corrupt package directory {package_dir}")
        shutil.rmtree(package_dir, ignore_errors=True)

    def check(self, identity: PackageIdentity) -> Optional[Path]:
        """
        Return the package directory if it is materialized.

        A directory that exists but fails validation is removed, so callers
        see a clean "missing" state.
        """
        path = self.path_for(identity)
        if not path.exists():
            return None
        if self.validate(path):
            return path
        self.discard(path)
        return None

    def ensure_materialized(
        self, identity: PackageIdentity, source: "RepositorySource"
    ) -> Path:
        """
        Make sure identity is expanded in this store, fetching it from source if needed.

        Args:
            identity: Package to materialize
            source: Repository tier the identity was resolved from

        Returns:
            Path to the expanded package directory

        Raises:
            FetchError: If the archive cannot be downloaded
            ExtractionError: If the archive cannot be expanded or is not a valid package
        """
        existing = self.check(identity)
        if existing is not None:
            return existing

        archive = self.archive_path_for(identity)
        if not archive.is_file():
            if not source.can_fetch:
                raise FetchError(
                    identity.folder_name,
                    f"not materialized and the {source.tier.value} repository cannot supply archives",
                )
            self._download(identity, source, archive)
        else:
            logger.debug(f"Reusing downloaded archive {archive}")

        self._expand(identity, archive)
        return self.path_for(identity)

    def _download(
        self, identity: PackageIdentity, source: "RepositorySource", archive: Path
    ) -> None:
        self.wraps_dir.mkdir(parents=True, exist_ok=True)
        partial = archive.with_name(archive.name + ".part")
        try:
            source.fetch(identity, partial)
            os.replace(partial, archive)
        except Exception:
            partial.unlink(missing_ok=True)
            raise

    def _expand(self, identity: PackageIdentity, archive: Path) -> None:
        logger.info(f"Expanding package {identity}...")
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        target = self.path_for(identity)
        staging = Path(
            tempfile.mkdtemp(prefix=f".{identity.folder_name}-", dir=self.cache_dir)
        )
        try:
            self.extractor(archive, staging)
            if not self.validate(staging):
                raise ExtractionError(
                    f"Archive {archive.name} does not contain a valid descriptor and a module file"
                )
            os.replace(staging, target)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            # a malformed archive would fail the same way on every run
            archive.unlink(missing_ok=True)
            raise

    def purge(self, names: Iterable[str]) -> List[Path]:
        """
        Delete archives and expanded directories of the given package names.

        Used by panic mode. Failures to delete are logged and skipped.

        Returns:
            Paths that were deleted
        """
        wanted = {n.casefold() for n in names}
        candidates: List[Path] = []
        if self.wraps_dir.is_dir():
            candidates += sorted(self.wraps_dir.glob(f"*{ARCHIVE_SUFFIX}"))
        if self.cache_dir.is_dir():
            candidates += sorted(p for p in self.cache_dir.iterdir() if p.is_dir())

        deleted = []
        for path in candidates:
            identity = PackageIdentity.from_folder_name(path.name)
            if identity is None or identity.key not in wanted:
                continue
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                logger.warning(f"PANIC: Could not delete {path}: {e}")
                continue
            logger.info(f"PANIC: deleted {path}")
            deleted.append(path)
        return deleted
