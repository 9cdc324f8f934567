"""Expansion of .wrap package archives (zip files)."""

import logging
import zipfile
from pathlib import Path, PurePosixPath
from typing import Callable, List

from wrapboot.exceptions import ExtractionError

logger = logging.getLogger(__name__)

Extractor = Callable[[Path, Path], None]


def _safe_member_path(destination: Path, member_name: str) -> Path:
    """Map an archive member to a path below destination, refusing escapes."""
    # archives built on Windows may use backslashes
    parts = PurePosixPath(member_name.replace("\\", "/")).parts
    if not parts or parts[0] == "/" or ".." in parts or ":" in parts[0]:
        raise ExtractionError(f"Refusing to extract unsafe archive member '{member_name}'")
    return destination.joinpath(*parts)


def extract_archive(archive: Path, destination: Path) -> List[Path]:
    """
    Extract a .wrap archive into destination.

    Args:
        archive: Path to the zip archive
        destination: Existing directory to extract into

    Returns:
        List of extracted file paths

    Raises:
        ExtractionError: If the archive is malformed, contains unsafe member
            paths or cannot be written
    """
    extracted = []
    try:
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                target = _safe_member_path(destination, info.filename)
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as dst:
                    while True:
                        chunk = src.read(64 * 1024)
                        if not chunk:
                            break
                        dst.write(chunk)
                extracted.append(target)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ExtractionError(f"Malformed package archive {archive}: {e}") from e
    except OSError as e:
        raise ExtractionError(f"Could not expand {archive} into {destination}: {e}") from e

    logger.debug(f"Expanded {archive.name} ({len(extracted)} files)")
    return extracted
