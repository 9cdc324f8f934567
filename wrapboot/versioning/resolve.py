"""
"Latest wins" selection over package candidates.

Candidates typically come from directory names in a cache folder or from
entries of the remote index. Selection keeps one identity per name: the
highest version, or the first one encountered when versions are equal.
"""

import logging
from typing import Dict, Iterable, List, Optional, TypeVar

from .identity import PackageIdentity

logger = logging.getLogger(__name__)

T = TypeVar("T")


def select_latest(candidates: Iterable[PackageIdentity]) -> List[PackageIdentity]:
    """
    Select the highest version per package name.

    Args:
        candidates: Identities in discovery order, possibly with repeated names

    Returns:
        One identity per case-insensitive name, in first-seen name order
    """
    return select_latest_by(candidates, lambda c: c)


def select_latest_by(candidates: Iterable[T], identity_of) -> List[T]:
    """
    Like select_latest, for arbitrary items carrying an identity.

    Items whose identity has an invalid version are skipped.
    """
    winners: Dict[str, T] = {}
    for candidate in candidates:
        identity = identity_of(candidate)
        if not identity.version.is_valid:
            logger.debug(f"Ignoring {identity.name}: invalid version")
            continue
        current = winners.get(identity.key)
        # strictly greater: ties keep the first candidate
        if current is None or identity.version > identity_of(current).version:
            winners[identity.key] = candidate
    return list(winners.values())


def scan_identities(
    folder_names: Iterable[str], names: Optional[Iterable[str]] = None
) -> List[PackageIdentity]:
    """
    Parse "<name>-<version>" folder names into identities.

    Unparsable names are skipped. When names is given, only identities for
    those package names (case-insensitive) are returned.
    """
    wanted = {n.casefold() for n in names} if names is not None else None
    identities = []
    for folder_name in folder_names:
        identity = PackageIdentity.from_folder_name(folder_name)
        if identity is None:
            logger.debug(f"Skipping '{folder_name}': not a <name>-<version> folder")
            continue
        if wanted is not None and identity.key not in wanted:
            continue
        identities.append(identity)
    return identities
