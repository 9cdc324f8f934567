"""
Entry point discovery records.

Scanning a module for its entry point means importing and introspecting it,
so the verdict is persisted in a small sidecar file next to the module:

    bin-py3/one_ring.py
    bin-py3/_one_ring.py.entrypoint

Layout (fixed schema, no generic serializer):

    byte 0    format version
    byte 1    verdict tag: 0 = not found, 1 = found
    byte 2..  UTF-8 symbol path ("OneRingRunner.main"), only when found

A record that is missing, truncated, undecodable or written with another
format version reads as NOT_SCANNED and is rebuilt by the next scan.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from wrapboot.constants import ENTRYPOINT_RECORD_SUFFIX, ENTRYPOINT_RECORD_VERSION

logger = logging.getLogger(__name__)

_TAG_NOT_FOUND = 0
_TAG_FOUND = 1


class ScanState(Enum):
    NOT_SCANNED = "not-scanned"
    FOUND = "found"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class EntryPointCacheRecord:
    state: ScanState
    symbol_path: Optional[str] = None
    format_version: int = ENTRYPOINT_RECORD_VERSION

    @classmethod
    def not_scanned(cls) -> "EntryPointCacheRecord":
        return cls(ScanState.NOT_SCANNED)

    @classmethod
    def found(cls, symbol_path: str, format_version: int = ENTRYPOINT_RECORD_VERSION):
        return cls(ScanState.FOUND, symbol_path, format_version)

    @classmethod
    def not_found(cls, format_version: int = ENTRYPOINT_RECORD_VERSION):
        return cls(ScanState.NOT_FOUND, None, format_version)

    @property
    def is_found(self) -> bool:
        return self.state is ScanState.FOUND

    def encode(self) -> bytes:
        if self.state is ScanState.NOT_SCANNED:
            raise ValueError("A not-scanned verdict cannot be persisted")
        if not 0 <= self.format_version <= 255:
            raise ValueError(f"Format version {self.format_version} does not fit in a byte")
        if self.state is ScanState.FOUND:
            return bytes([self.format_version, _TAG_FOUND]) + self.symbol_path.encode("utf-8")
        return bytes([self.format_version, _TAG_NOT_FOUND])

    @classmethod
    def decode(
        cls, data: bytes, expected_version: int = ENTRYPOINT_RECORD_VERSION
    ) -> "EntryPointCacheRecord":
        """Decode a record; anything unexpected yields NOT_SCANNED."""
        if len(data) < 2 or data[0] != expected_version:
            return cls.not_scanned()
        tag, payload = data[1], data[2:]
        if tag == _TAG_NOT_FOUND and not payload:
            return cls.not_found(expected_version)
        if tag == _TAG_FOUND:
            try:
                symbol_path = payload.decode("utf-8").strip()
            except UnicodeDecodeError:
                return cls.not_scanned()
            if symbol_path:
                return cls.found(symbol_path, expected_version)
        return cls.not_scanned()


def record_path_for(module_file: Path) -> Path:
    return module_file.with_name(f"_{module_file.name}{ENTRYPOINT_RECORD_SUFFIX}")


def read_record(
    module_file: Path, expected_version: int = ENTRYPOINT_RECORD_VERSION
) -> EntryPointCacheRecord:
    """
    Read the sidecar record of module_file.

    Unusable records are deleted so they are rebuilt on the next scan.
    """
    path = record_path_for(module_file)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return EntryPointCacheRecord.not_scanned()
    except OSError as e:
        logger.debug(f"Could not read entry point record {path}: {e}")
        return EntryPointCacheRecord.not_scanned()

    record = EntryPointCacheRecord.decode(data, expected_version)
    if record.state is ScanState.NOT_SCANNED:
        logger.debug(f"Discarding stale entry point record {path}")
        discard_record(module_file)
    return record


def write_record(module_file: Path, record: EntryPointCacheRecord) -> bool:
    """
    Persist record next to module_file.

    Returns:
        False if the record could not be written (e.g. read-only package);
        discovery still succeeds, it just is not cached.
    """
    path = record_path_for(module_file)
    temporary = path.with_name(path.name + ".tmp")
    try:
        temporary.write_bytes(record.encode())
        os.replace(temporary, path)
    except OSError as e:
        logger.warning(f"Could not write entry point record {path}: {e}")
        temporary.unlink(missing_ok=True)
        return False
    return True


def discard_record(module_file: Path) -> None:
    path = record_path_for(module_file)
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not delete entry point record {path}: {e}")
