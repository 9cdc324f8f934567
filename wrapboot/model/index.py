"""Remote index document parsing.

Two formats are understood:

Structured (XML) index, the default ``index.wraplist``::

    <package-list>
      <wrap name="one-ring" version="1.0">
        <link rel="package" href="one-ring-1.0.wrap" />
        <depends>sauron</depends>
      </wrap>
    </package-list>

Plain-text list, one absolute or relative package link per line, ``#`` for
comments. The identity comes from the file name (``<name>-<version>.wrap``)
and the dependencies are only known once the package is expanded.
"""

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional
from urllib.parse import unquote, urljoin, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wrapboot.exceptions import IndexFormatError
from wrapboot.versioning import PackageIdentity, SemanticVersion, version_or_invalid

logger = logging.getLogger(__name__)


class RemoteIndexEntry(BaseModel):
    """A package offered by the remote index."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Package name")
    version: str = Field(..., description="Version string as published")
    link: str = Field(..., description="Absolute download link of the .wrap archive")
    dependencies: List[str] = Field(default_factory=list, description="Dependency names")
    dependencies_known: bool = Field(
        True, description="False when the index format does not carry dependencies"
    )

    @field_validator("name", "link")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()

    @property
    def semantic_version(self) -> SemanticVersion:
        return version_or_invalid(self.version)

    @property
    def identity(self) -> PackageIdentity:
        return PackageIdentity(self.name, self.semantic_version)


def parse_index(document: str, base_url: str) -> List[RemoteIndexEntry]:
    """
    Parse a remote index document in either supported format.

    Args:
        document: Raw index text
        base_url: Address the index was fetched from; relative links resolve against it

    Returns:
        Entries in document order (duplicates allowed)

    Raises:
        IndexFormatError: If a structured document cannot be parsed
    """
    stripped = document.lstrip("\ufeff \t\r\n")
    if stripped.startswith("<"):
        return parse_xml_index(stripped, base_url)
    return parse_plain_index(stripped, base_url)


def parse_xml_index(document: str, base_url: str) -> List[RemoteIndexEntry]:
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise IndexFormatError(f"Malformed index document at {base_url}: {e}") from e

    entries = []
    for wrap in root.iter("wrap"):
        name = wrap.get("name")
        version = wrap.get("semantic-version") or wrap.get("version")
        href = _package_href(wrap)
        if not name or not version or not href:
            logger.debug(
                f"Skipping incomplete index entry name={name!r} version={version!r}"
            )
            continue
        dependencies = []
        for depends in wrap.iter("depends"):
            tokens = (depends.text or "").split()
            if tokens:
                dependencies.append(tokens[0])
        entries.append(
            RemoteIndexEntry(
                name=name,
                version=version,
                link=urljoin(base_url, href),
                dependencies=dependencies,
            )
        )
    return entries


def _package_href(wrap: ET.Element) -> Optional[str]:
    for link in wrap.iter("link"):
        if link.get("rel", "package") == "package" and link.get("href"):
            return link.get("href")
    return None


def parse_plain_index(document: str, base_url: str) -> List[RemoteIndexEntry]:
    entries = []
    for raw_line in document.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        link = urljoin(base_url, line)
        file_name = unquote(urlparse(link).path.rstrip("/").split("/")[-1])
        identity = PackageIdentity.from_folder_name(file_name)
        if identity is None:
            logger.debug(f"Skipping index line '{line}': not a <name>-<version>.wrap link")
            continue
        entries.append(
            RemoteIndexEntry(
                name=identity.name,
                version=str(identity.version),
                link=link,
                dependencies_known=False,
            )
        )
    return entries
