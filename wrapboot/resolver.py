"""
Transitive package resolution across repository tiers.

For every requested name the tiers are tried in precedence order (project,
system, remote). The first tier that offers the name supplies its active
(latest) identity; the dependency names of that package are then resolved
the same way. A name resolved once in a pass is never expanded again, which
also makes cyclic descriptors terminate.

Packages coming from the remote index are materialized into the system
store, either while planning (when their descriptor is the only source of
their dependencies) or by the fetch step that follows the plan. Packages
already present locally are used in place, so a dependency missing only
locally costs exactly one download and its already-materialized ancestors
are not touched.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from wrapboot.cache.store import CacheStore
from wrapboot.constants import Tier
from wrapboot.exceptions import PackageNotFoundError
from wrapboot.model.descriptor import read_descriptor
from wrapboot.repository.sources import LocalCacheSource, RepositorySource
from wrapboot.versioning import PackageIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPackage:
    """A package selected for this run and the directory it lives in."""

    identity: PackageIdentity
    path: Path
    tier: Tier
    dependencies: Tuple[str, ...] = field(default_factory=tuple)


class DependencyResolver:
    """
    Resolves root package names into the flattened set of packages to load.

    Args:
        sources: Repository tiers in precedence order
        store: Store remote packages are materialized into (the system store)
        forced_remote: Names that must come from the remote index in this pass
            (panic mode)
    """

    def __init__(
        self,
        sources: Sequence[RepositorySource],
        store: CacheStore,
        forced_remote: Iterable[str] = (),
    ):
        self.sources = list(sources)
        self.store = store
        self.forced_remote: Set[str] = {n.casefold() for n in forced_remote}
        self._pending: Dict[PackageIdentity, RepositorySource] = {}

    def resolve(self, names: Iterable[str]) -> List[ResolvedPackage]:
        """Plan names and fetch whatever the plan needs from the remote index."""
        return self.fetch(self.plan(names))

    def plan(self, names: Iterable[str]) -> List[ResolvedPackage]:
        """
        Resolve names and their dependencies.

        Remote packages whose dependencies the index already lists are not
        downloaded here but left for fetch(); the others have to be
        materialized to read their descriptor.

        Returns:
            Resolved packages, roots first, one per name

        Raises:
            PackageNotFoundError: If a root or transitive name is in no tier
            FetchError, ExtractionError: If materializing a remote package fails
        """
        resolved: List[ResolvedPackage] = []
        visited: Set[str] = set()
        # depth-first, pre-order; stack holds (name, required_by)
        stack: List[Tuple[str, Optional[str]]] = [
            (name, None) for name in reversed(list(names))
        ]
        while stack:
            name, required_by = stack.pop()
            key = name.casefold()
            if key in visited:
                continue
            visited.add(key)

            package = self.resolve_one(name, required_by)
            resolved.append(package)
            for dependency in reversed(package.dependencies):
                if dependency.casefold() not in visited:
                    stack.append((dependency, package.identity.name))

        return resolved

    def resolve_one(self, name: str, required_by: Optional[str] = None) -> ResolvedPackage:
        forced = name.casefold() in self.forced_remote
        for source in self.sources:
            if forced and not source.can_fetch:
                continue
            identity = source.locate(name)
            if identity is None:
                continue

            dependencies = source.dependencies_of(identity)
            if isinstance(source, LocalCacheSource):
                path = source.path_for(identity)
            elif dependencies is None:
                path = self.store.ensure_materialized(identity, source)
            else:
                path = self.store.path_for(identity)
                self._pending[identity] = source
            if dependencies is None:
                dependencies = list(read_descriptor(path).dependencies)

            logger.debug(
                f"Resolved {identity} from the {source.tier.value} repository at {path}"
            )
            return ResolvedPackage(
                identity=identity,
                path=path,
                tier=source.tier,
                dependencies=tuple(dependencies),
            )

        raise PackageNotFoundError(name, required_by)

    @property
    def pending(self) -> List[PackageIdentity]:
        """Planned packages that still have to be downloaded."""
        return list(self._pending)

    def fetch(self, packages: Sequence[ResolvedPackage]) -> List[ResolvedPackage]:
        """
        Materialize the planned packages that are not on disk yet, in plan order.

        Raises:
            FetchError, ExtractionError: If materializing a package fails
        """
        for package in packages:
            source = self._pending.get(package.identity)
            if source is None:
                continue
            self.store.ensure_materialized(package.identity, source)
            del self._pending[package.identity]
        return list(packages)
