"""Release archive extraction."""

from __future__ import annotations

import asyncio
import zipfile
from pathlib import Path, PurePosixPath

from teddy_upgrader.errors import ExtractionError
from teddy_upgrader.logging import get_logger

log = get_logger("teddy_upgrader.extractor")


def _check_member(member: zipfile.ZipInfo) -> None:
    name = member.filename.replace("\\", "/")
    path = PurePosixPath(name)
    if name.startswith("/") or ".." in path.parts or (path.parts and ":" in path.parts[0]):
        raise ExtractionError(f"Unsafe path in archive: {member.filename!r}")


def extract_archive(archive_path: str | Path, extract_dir: str | Path) -> Path:
    """Unpack *archive_path* into *extract_dir*.

    Every member is checked before anything is written so a malicious
    archive cannot place files outside the extraction directory.
    """
    target = Path(extract_dir)
    try:
        with zipfile.ZipFile(archive_path) as zf:
            members = zf.infolist()
            for member in members:
                _check_member(member)
            target.mkdir(parents=True, exist_ok=True)
            zf.extractall(target, members=members)
    except zipfile.BadZipFile as exc:
        raise ExtractionError(f"Corrupt archive {archive_path}: {exc}") from exc
    except OSError as exc:
        raise ExtractionError(f"Cannot extract {archive_path}: {exc}") from exc

    log.debug("archive_extracted", archive=str(archive_path), path=str(target))
    return target


async def extract_archive_async(archive_path: str | Path, extract_dir: str | Path) -> Path:
    """Run :func:`extract_archive` in a worker thread and wait for it."""
    return await asyncio.to_thread(extract_archive, archive_path, extract_dir)
