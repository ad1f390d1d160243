"""Pre-upgrade backups of the installation."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from teddy_upgrader.logging import get_logger

log = get_logger("teddy_upgrader.backup")


def backup_timestamp(moment: datetime) -> str:
    """Format *moment* as a second-resolution ``YYYYMMDDHHMMSS`` stamp."""
    return moment.strftime("%Y%m%d%H%M%S")


def create_backup_dir(backup_root: str | Path, started_at: datetime) -> Path:
    """Create the backup directory named after the upgrade start time."""
    backup_dir = Path(backup_root) / backup_timestamp(started_at)
    backup_dir.mkdir(parents=True, exist_ok=True)
    return backup_dir


def _ignore_for(exclude: str, skip: set[Path]) -> Callable[[str, list[str]], set[str]]:
    by_name = shutil.ignore_patterns(exclude)

    def ignore(directory: str, names: list[str]) -> set[str]:
        ignored = set(by_name(directory, names))
        base = Path(directory).resolve()
        ignored.update(name for name in names if (base / name).resolve() in skip)
        return ignored

    return ignore


def backup_instance(
    source: str | Path,
    backup_dir: str | Path,
    exclude: str,
    skip: tuple[str | Path, ...] = (),
) -> Path:
    """Copy the whole installation into *backup_dir*.

    Any file or directory named *exclude* is skipped at every depth.
    *backup_dir* itself and any *skip* paths are never copied, so working
    directories located inside the installation do not copy into
    themselves. Modification times are preserved.
    """
    skipped = {Path(p).resolve() for p in (backup_dir, *skip)}
    inside = [p for p in skipped if p.is_relative_to(Path(source).resolve())]
    if inside:
        log.warning(
            "backup_skipping_working_dirs",
            source=str(source),
            skipped=sorted(str(p) for p in inside),
        )
    shutil.copytree(
        source,
        backup_dir,
        ignore=_ignore_for(exclude, skipped),
        copy_function=shutil.copy2,
        dirs_exist_ok=True,
    )
    log.info("backup_created", source=str(source), backup_dir=str(backup_dir))
    return Path(backup_dir)


def delete_directory(path: str | Path | None, label: str) -> bool:
    """Remove a working directory, logging instead of raising on failure."""
    if path is None or not Path(path).exists():
        return False
    log.info("deleting_directory", kind=label, path=str(path))
    try:
        shutil.rmtree(path)
    except OSError as exc:
        log.error(
            "directory_delete_failed",
            kind=label,
            path=str(path),
            error=str(exc),
        )
        return False
    return True
