"""Archive extraction for downloaded tile products."""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import tarfile
import zipfile
from pathlib import Path

from hydrodem.errors import ArchiveError

LOGGER = logging.getLogger(__name__)

ARCHIVE_NAME_PATTERN = re.compile(
    r"^(?P<grid>[A-Z]{2}[0-9]{2})(?:[a-z]{2})?_(?P<product>[A-Z]+)_[A-Z]+\.\w+$"
)


def archive_target_dir(archive_path: Path) -> Path:
    """Return the directory an archive extracts into.

    Quarter-tile archives (``SU10ne_DTM_EA.zip``) share the 10 km tile's
    directory (``SU10_DTM``).
    """
    match = ARCHIVE_NAME_PATTERN.match(archive_path.name)
    if match is None:
        raise ArchiveError(f"Unrecognised archive name: {archive_path.name}")
    return archive_path.parent / f"{match.group('grid')}_{match.group('product')}"


def _safe_extract_path(root: Path, member: Path) -> Path:
    """Ensure an archive member resolves inside the destination root."""
    root_resolved = root.resolve()
    candidate = (root / member).resolve()
    try:
        candidate.relative_to(root_resolved)
    except ValueError as exc:
        raise ArchiveError(f"Archive member {member} escapes the target directory.") from exc
    return candidate


def extract_archive(archive_path: Path, destination: Path) -> list[Path]:
    """Extract an archive and return the files written."""
    destination.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    try:
        if zipfile.is_zipfile(archive_path):
            with zipfile.ZipFile(archive_path) as archive:
                for member in archive.namelist():
                    if not member:
                        continue
                    safe_path = _safe_extract_path(destination, Path(member))
                    if member.endswith("/"):
                        safe_path.mkdir(parents=True, exist_ok=True)
                        continue
                    safe_path.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(member) as source, safe_path.open("wb") as target:
                        shutil.copyfileobj(source, target)
                    written.append(safe_path)
        elif tarfile.is_tarfile(archive_path):
            with tarfile.open(archive_path) as archive:
                members = archive.getmembers()
                for member in members:
                    if member.name:
                        _safe_extract_path(destination, Path(member.name))
                archive.extractall(destination, filter="data")
                written.extend(destination / member.name for member in members if member.isfile())
        else:
            raise ArchiveError(f"Unsupported archive format: {archive_path}")
    except (OSError, zipfile.BadZipFile, tarfile.TarError) as exc:
        raise ArchiveError(f"Could not extract {archive_path}: {exc}") from exc
    return written


class ArchiveExtractor:
    """Extract archives off the event loop."""

    async def extract(self, archive_path: Path, destination: Path | None = None) -> Path:
        """Extract an archive off the event loop and return its target directory."""
        target = destination or archive_target_dir(archive_path)
        LOGGER.info("Extracting %s to %s...", archive_path.name, target)
        await asyncio.to_thread(extract_archive, archive_path, target)
        LOGGER.info("Finished extracting %s.", archive_path.name)
        return target
