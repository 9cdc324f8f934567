"""Repository tiers: project-local cache, system cache and remote index.

Tiers are consulted in that order for every package name. The two local
tiers only ever return identities that are already materialized; the remote
index is the only tier that can supply archive bytes.
"""

import logging
import os
from abc import ABCMeta, abstractmethod
from pathlib import Path, PurePath
from typing import Callable, Dict, Iterator, List, Optional, Union

from wrapboot.cache.store import CacheStore
from wrapboot.constants import CACHE_DIR, INDEX_FILE, WRAPS_DIR, Tier
from wrapboot.exceptions import FetchError, WrapbootError
from wrapboot.model.index import RemoteIndexEntry, parse_index
from wrapboot.versioning import (
    PackageIdentity,
    scan_identities,
    select_latest,
    select_latest_by,
)

from .transport import HttpTransport

logger = logging.getLogger(__name__)


def iter_self_and_parents(directory: PurePath) -> Iterator[PurePath]:
    """Yield directory, then each ancestor up to and including the filesystem root."""
    yield directory
    yield from directory.parents


def find_project_cache(
    start: Union[str, PurePath],
    exists: Callable[[PurePath], bool] = os.path.isdir,
) -> Optional[PurePath]:
    """
    Find the nearest ``wraps/_cache`` folder at or above start.

    The walk stops at the first hit (nearest wins entirely) or at the
    filesystem root.

    Args:
        start: Directory to start from (made absolute if relative)
        exists: Predicate telling whether a directory exists; injectable so
            the walk can be exercised without touching the filesystem

    Returns:
        Path of the cache folder, or None
    """
    start_path = PurePath(start)
    if not start_path.is_absolute():
        start_path = PurePath(os.path.abspath(start_path))
    for directory in iter_self_and_parents(start_path):
        candidate = directory / WRAPS_DIR / CACHE_DIR
        if exists(candidate):
            return candidate
    return None


class RepositorySource(metaclass=ABCMeta):
    """
    A place packages can be resolved from.

    Attributes:
    - tier (Tier): The tier this source represents.
    - can_fetch (bool): Whether fetch() can supply archive bytes.

    Methods:
    - list_identities(): All package identities this source offers.
    - locate(name): The active (latest) identity for a package name, or None.
    - fetch(identity, destination): Download the archive of identity.
    """

    tier: Tier
    can_fetch: bool = False

    @abstractmethod
    def list_identities(self) -> List[PackageIdentity]:
        pass

    def locate(self, name: str) -> Optional[PackageIdentity]:
        key = name.casefold()
        latest = select_latest(i for i in self.list_identities() if i.key == key)
        return latest[0] if latest else None

    def fetch(self, identity: PackageIdentity, destination: Path) -> Path:
        raise FetchError(
            identity.archive_name, f"the {self.tier.value} repository cannot supply archives"
        )

    def dependencies_of(self, identity: PackageIdentity) -> Optional[List[str]]:
        """Dependency names known to the source itself, or None to read the descriptor."""
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} tier={self.tier.value}>"


class LocalCacheSource(RepositorySource):
    """A tier backed by an on-disk wraps/_cache folder."""

    def __init__(self, store: Optional[CacheStore], tier: Tier):
        self.store = store
        self.tier = tier

    @property
    def available(self) -> bool:
        return self.store is not None and self.store.cache_dir.is_dir()

    def list_identities(self) -> List[PackageIdentity]:
        if not self.available:
            return []
        return scan_identities(self.store.folder_names())

    def locate(self, name: str) -> Optional[PackageIdentity]:
        """
        Latest materialized version of name.

        Corrupt directories met on the way are removed by the store and
        do not take part in the selection.
        """
        if not self.available:
            return None
        candidates = scan_identities(self.store.folder_names(), names=[name])
        valid = [c for c in candidates if self.store.check(c) is not None]
        latest = select_latest(valid)
        return latest[0] if latest else None

    def path_for(self, identity: PackageIdentity) -> Path:
        return self.store.path_for(identity)


class ProjectLocalCache(LocalCacheSource):
    """The nearest wraps/_cache found from the working directory upwards."""

    def __init__(self, start: Union[str, Path], exists=os.path.isdir):
        cache_folder = find_project_cache(start, exists=exists)
        store = CacheStore(Path(cache_folder).parent) if cache_folder else None
        if cache_folder:
            logger.debug(f"Project repository found at {cache_folder}")
        super().__init__(store, Tier.PROJECT)


class SystemCache(LocalCacheSource):
    """The system-wide repository under the configured system root."""

    def __init__(self, system_root: Union[str, Path], store: Optional[CacheStore] = None):
        self.system_root = Path(system_root)
        super().__init__(store or CacheStore(self.system_root / WRAPS_DIR), Tier.SYSTEM)


def index_url_for(href: str) -> str:
    """
    Address of the index document for a configured remote address.

    A base address ending with "/" gets the default index file name appended;
    anything else is taken as the document address itself.
    """
    return href + INDEX_FILE if href.endswith("/") else href


class RemoteIndex(RepositorySource):
    """
    Packages published on a remote server.

    The index document is downloaded lazily, at most once per instance.
    """

    tier = Tier.REMOTE
    can_fetch = True

    def __init__(self, href: str, transport: Optional[HttpTransport] = None):
        self.href = href
        self.index_url = index_url_for(href)
        self.transport = transport or HttpTransport()
        self._entries: Optional[Dict[str, List[RemoteIndexEntry]]] = None

    @property
    def loaded(self) -> bool:
        return self._entries is not None

    def entries(self) -> Dict[str, List[RemoteIndexEntry]]:
        """Index entries grouped by case-folded name."""
        if self._entries is None:
            logger.info(f"Reading package index {self.index_url}")
            document = self.transport.fetch_text(self.index_url)
            grouped: Dict[str, List[RemoteIndexEntry]] = {}
            for entry in parse_index(document, self.index_url):
                grouped.setdefault(entry.name.casefold(), []).append(entry)
            self._entries = grouped
            logger.debug(
                f"Remote index lists {sum(len(v) for v in grouped.values())} packages"
            )
        return self._entries

    def list_identities(self) -> List[PackageIdentity]:
        return [e.identity for entries in self.entries().values() for e in entries]

    def latest_entry(self, name: str) -> Optional[RemoteIndexEntry]:
        latest = select_latest_by(
            self.entries().get(name.casefold(), []), lambda e: e.identity
        )
        return latest[0] if latest else None

    def locate(self, name: str) -> Optional[PackageIdentity]:
        entry = self.latest_entry(name)
        return entry.identity if entry else None

    def entry_for(self, identity: PackageIdentity) -> RemoteIndexEntry:
        for entry in self.entries().get(identity.key, []):
            if entry.identity == identity:
                return entry
        raise WrapbootError(f"{identity} is not listed in {self.index_url}")

    def dependencies_of(self, identity: PackageIdentity) -> Optional[List[str]]:
        entry = self.entry_for(identity)
        return list(entry.dependencies) if entry.dependencies_known else None

    def fetch(self, identity: PackageIdentity, destination: Path) -> Path:
        entry = self.entry_for(identity)
        logger.info(f"Downloading {identity} from {entry.link}")
        try:
            return self.transport.download(entry.link, destination)
        except FetchError:
            logger.error(f"Download of {identity} failed")
            raise
