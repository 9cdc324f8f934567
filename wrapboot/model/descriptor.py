"""Package descriptor (.wrapdesc) parsing.

A descriptor is a small line-oriented file stored at the root of an expanded
package:

    name: one-ring
    version: 1.0
    depends: sauron
    depends: palantir >= 2.0

Only the first token of a ``depends`` value is the dependency name; version
constraints are not interpreted, the latest available version of a name wins.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from wrapboot.constants import DESCRIPTOR_SUFFIX
from wrapboot.exceptions import DescriptorError
from wrapboot.versioning import PackageIdentity

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("name", "version")


@dataclass(frozen=True)
class PackageDescriptor:
    """A package's own identity and the names of the packages it depends on."""

    identity: PackageIdentity
    dependencies: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return self.identity.name


def parse_pairs(text: str) -> List[Tuple[str, str]]:
    """Split descriptor text into (lower-cased key, value) pairs, in file order."""
    pairs = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        if not key:
            continue
        pairs.append((key, value.strip()))
    return pairs


def parse_descriptor(text: str, source: Optional[Path] = None) -> PackageDescriptor:
    """
    Parse the contents of a descriptor file.

    Args:
        text: Descriptor file contents
        source: Path the text was read from, used in error messages

    Returns:
        PackageDescriptor

    Raises:
        DescriptorError: If name or version is missing or the version is unparsable
    """
    values: Dict[str, str] = {}
    dependencies: List[str] = []
    seen = set()

    for key, value in parse_pairs(text):
        if key == "depends":
            dep_name = value.split()[0] if value.split() else ""
            if dep_name and dep_name.casefold() not in seen:
                seen.add(dep_name.casefold())
                dependencies.append(dep_name)
        elif key in ("name", "version", "semantic-version"):
            values.setdefault(key, value)
        # unknown keys are ignored

    name = values.get("name")
    version_string = values.get("semantic-version") or values.get("version")
    missing = [k for k, v in (("name", name), ("version", version_string)) if not v]
    if missing:
        raise DescriptorError(source or "<descriptor>", missing)

    identity = PackageIdentity.parse(name, version_string)
    if identity is None:
        # fall back to the plain version when semantic-version is malformed
        identity = PackageIdentity.parse(name, values.get("version"))
    if identity is None:
        raise DescriptorError(source or "<descriptor>", ["version"])

    return PackageDescriptor(identity=identity, dependencies=tuple(dependencies))


def find_descriptor_file(package_dir: Path) -> Optional[Path]:
    """Return the first *.wrapdesc file at the root of a package directory."""
    if not package_dir.is_dir():
        return None
    candidates = sorted(package_dir.glob(f"*{DESCRIPTOR_SUFFIX}"))
    return candidates[0] if candidates else None


def read_descriptor(package_dir: Path) -> PackageDescriptor:
    """
    Read the descriptor of an expanded package directory.

    Raises:
        DescriptorError: If the directory has no descriptor or it is invalid
    """
    path = find_descriptor_file(package_dir)
    if path is None:
        raise DescriptorError(package_dir, REQUIRED_KEYS)
    text = path.read_text(encoding="utf-8-sig", errors="replace")
    return parse_descriptor(text, source=path)


def try_read_descriptor(package_dir: Path) -> Optional[PackageDescriptor]:
    """Read a descriptor, returning None if it is missing or invalid."""
    path = find_descriptor_file(package_dir)
    if path is None:
        return None
    try:
        text = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        logger.debug(f"Could not read descriptor {path}: {e}")
        return None
    try:
        return parse_descriptor(text, source=path)
    except DescriptorError as e:
        logger.debug(str(e))
        return None


def write_descriptor(package_dir: Path, descriptor: PackageDescriptor) -> Path:
    """Write a descriptor file named after the package into package_dir."""
    lines = [
        f"name: {descriptor.identity.name}",
        f"version: {descriptor.identity.version}",
    ]
    lines += [f"depends: {dep}" for dep in descriptor.dependencies]
    path = package_dir / f"{descriptor.identity.name}{DESCRIPTOR_SUFFIX}"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
