"""Replacement of managed resources in a live installation.

Resources are deleted first, then copied from the extraction directory.
The two phases are not transactional: an interruption during the copy
leaves a partially replaced installation that must be restored from the
backup.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from teddy_upgrader.config import InstallationManifest
from teddy_upgrader.logging import get_logger

log = get_logger("teddy_upgrader.replacer")


@dataclass(frozen=True)
class CopyPair:
    """A resource to copy from the extracted release into the instance."""

    source: Path
    target: Path
    is_directory: bool


def deletion_targets(
    root: str | Path,
    manifest: InstallationManifest,
    generated: tuple[str, ...] | list[str] = (),
) -> list[Path]:
    """Paths under *root* removed before copying, in manifest order."""
    base = Path(root)
    dirs = [base / d for d in manifest.directories]
    dirs.extend(base / g for g in generated)
    return dirs + [base / f for f in manifest.files]


def copy_pairs(
    extract_dir: str | Path, root: str | Path, manifest: InstallationManifest
) -> list[CopyPair]:
    """Build the ordered (source, target) list for every manifest entry."""
    src, dst = Path(extract_dir), Path(root)
    pairs = [CopyPair(src / d, dst / d, True) for d in manifest.directories]
    pairs.extend(CopyPair(src / f, dst / f, False) for f in manifest.files)
    return pairs


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


def delete_resources(paths: list[Path]) -> list[Path]:
    """Delete each path recursively; absent paths are not errors.

    Returns the paths that could not be removed.
    """
    failed: list[Path] = []
    for path in paths:
        try:
            _remove(path)
        except FileNotFoundError:
            continue
        except OSError as exc:
            log.error("resource_delete_failed", path=str(path), error=str(exc))
            failed.append(path)
    return failed


def copy_resources(pairs: list[CopyPair]) -> list[CopyPair]:
    """Copy every pair into place; returns the pairs that failed."""
    failed: list[CopyPair] = []
    for pair in pairs:
        try:
            if pair.is_directory:
                shutil.copytree(
                    pair.source,
                    pair.target,
                    copy_function=shutil.copy2,
                    dirs_exist_ok=True,
                )
            else:
                pair.target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(pair.source, pair.target)
        except OSError as exc:
            log.error(
                "resource_copy_failed",
                source=str(pair.source),
                target=str(pair.target),
                error=str(exc),
            )
            failed.append(pair)
    return failed
