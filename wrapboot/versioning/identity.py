"""Package identities: a name paired with a version."""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional

from .version import SemanticVersion, try_parse_version

# name-version, where the version is the trailing dotted integer run
_FOLDER_PATTERN = re.compile(r"^(?P<name>.+?)-(?P<version>\d+(?:\.\d+){0,3})$")


@total_ordering
@dataclass(frozen=True)
class PackageIdentity:
    """
    A (name, version) pair naming a package at a specific version.

    Names compare case-insensitively; the original spelling is kept for
    building directory and archive names.
    """

    name: str
    version: SemanticVersion

    @property
    def key(self) -> str:
        """Case-folded name used for lookups and de-duplication."""
        return self.name.casefold()

    @property
    def folder_name(self) -> str:
        return f"{self.name}-{self.version}"

    @property
    def archive_name(self) -> str:
        return f"{self.folder_name}.wrap"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return (self.key, self.version) == (other.key, other.version)

    def __lt__(self, other) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return (self.key, self.version) < (other.key, other.version)

    def __hash__(self) -> int:
        return hash((self.key, self.version))

    def __str__(self) -> str:
        return self.folder_name

    @classmethod
    def parse(cls, name: str, version: str) -> Optional["PackageIdentity"]:
        """Build an identity, returning None when the version is unparsable."""
        parsed = try_parse_version(version)
        if parsed is None or not name:
            return None
        return cls(name.strip(), parsed)

    @classmethod
    def from_folder_name(cls, folder_name: str) -> Optional["PackageIdentity"]:
        """
        Parse "<name>-<version>" (or "<name>-<version>.wrap").

        Examples:
            one-ring-1.0      -> PackageIdentity("one-ring", 1.0)
            sauron-2.1.0.wrap -> PackageIdentity("sauron", 2.1.0)
            one-ring          -> None
        """
        if folder_name.lower().endswith(".wrap"):
            folder_name = folder_name[: -len(".wrap")]
        match = _FOLDER_PATTERN.match(folder_name)
        if not match:
            return None
        return cls.parse(match.group("name"), match.group("version"))
