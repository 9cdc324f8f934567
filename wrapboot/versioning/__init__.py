"""
Versioning module for wrapboot.

All version parsing, comparison and "latest wins" selection lives here so
the repository tiers, the cache and the self-upgrade check share one set of
rules.
"""

from .exceptions import VersioningError, VersionFormatError
from .identity import PackageIdentity
from .resolve import scan_identities, select_latest, select_latest_by
from .version import (
    SemanticVersion,
    compare_versions,
    parse_version,
    try_parse_version,
    version_or_invalid,
)

__all__ = [
    "SemanticVersion",
    "parse_version",
    "try_parse_version",
    "version_or_invalid",
    "compare_versions",
    "PackageIdentity",
    "select_latest",
    "select_latest_by",
    "scan_identities",
    "VersioningError",
    "VersionFormatError",
]
