"""
Version utility module for package version strings.

Package versions are short dotted integer tuples ("1", "1.2", "1.2.3.4").
Parsing is delegated to the standard packaging.version library after a strict
format check, and comparison is lexicographic over the components that are
actually present, so "1.2" sorts before "1.2.0".
"""

import re
from typing import Optional, Tuple

from packaging.version import InvalidVersion, Version as PackagingVersion

from .exceptions import VersionFormatError

MAX_COMPONENTS = 4

_VERSION_PATTERN = re.compile(r"^\d+(?:\.\d+){0,%d}$" % (MAX_COMPONENTS - 1))


class SemanticVersion:
    """
    An ordered tuple of one to four non-negative integers.

    Instances are immutable and hashable. The INVALID sentinel carries no
    components and sorts below every valid version.
    """

    __slots__ = ("_components", "_original_string")

    INVALID: "SemanticVersion"

    def __init__(self, version_string: str):
        """
        Initialize a SemanticVersion from a string.

        Args:
            version_string: Version string such as "1", "1.2" or "1.2.3.4"

        Raises:
            VersionFormatError: If the version string is invalid
        """
        # Handle numeric inputs (float/int from config files)
        if isinstance(version_string, (int, float)):
            version_string = str(version_string)

        original = str(version_string).strip()
        if not _VERSION_PATTERN.match(original):
            raise VersionFormatError(original)

        try:
            parsed = PackagingVersion(original)
        except InvalidVersion as e:
            raise VersionFormatError(original) from e

        self._original_string = original
        self._components: Tuple[int, ...] = tuple(parsed.release)

    @classmethod
    def _sentinel(cls) -> "SemanticVersion":
        instance = cls.__new__(cls)
        instance._original_string = ""
        instance._components = ()
        return instance

    @property
    def components(self) -> Tuple[int, ...]:
        """The integer components, exactly as many as were given."""
        return self._components

    @property
    def is_valid(self) -> bool:
        return bool(self._components)

    def __str__(self) -> str:
        if not self._components:
            return "<invalid>"
        return ".".join(str(c) for c in self._components)

    def __repr__(self) -> str:
        return f"SemanticVersion('{self}')"

    def __eq__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return False
        return self._components == other._components

    def __lt__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._components < other._components

    def __le__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._components <= other._components

    def __gt__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._components > other._components

    def __ge__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._components >= other._components

    def __hash__(self) -> int:
        return hash(self._components)


SemanticVersion.INVALID = SemanticVersion._sentinel()


def try_parse_version(version_string: Optional[str]) -> Optional[SemanticVersion]:
    """
    Parse a version string, returning None instead of raising.

    Args:
        version_string: Version string to parse (None is accepted)

    Returns:
        SemanticVersion, or None if the string is not a valid version
    """
    if version_string is None:
        return None
    if not _VERSION_PATTERN.match(str(version_string).strip()):
        return None
    return SemanticVersion(version_string)


def parse_version(version_string: str) -> SemanticVersion:
    """
    Parse a version string into a SemanticVersion object.

    Raises:
        VersionFormatError: If version string is invalid
    """
    return SemanticVersion(version_string)


def version_or_invalid(version_string: Optional[str]) -> SemanticVersion:
    """Parse a version string, falling back to the INVALID sentinel."""
    parsed = try_parse_version(version_string)
    return parsed if parsed is not None else SemanticVersion.INVALID


def compare_versions(version1: str, version2: str) -> int:
    """
    Compare two version strings.

    Returns:
        -1 if version1 < version2
         0 if version1 == version2
         1 if version1 > version2

    Raises:
        VersionFormatError: If either version string is invalid
    """
    v1 = SemanticVersion(version1)
    v2 = SemanticVersion(version2)

    if v1 < v2:
        return -1
    elif v1 > v2:
        return 1
    else:
        return 0
