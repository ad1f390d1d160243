"""Instance validation against the installation manifest."""

from __future__ import annotations

from pathlib import Path

from teddy_upgrader.config import InstallationManifest
from teddy_upgrader.logging import get_logger

log = get_logger("teddy_upgrader.validator")


def find_missing_resource(root: str | Path, manifest: InstallationManifest) -> str | None:
    """Return the first manifest entry missing under *root*, in manifest order."""
    base = Path(root)
    for resource in manifest.entries():
        if not (base / resource).exists():
            return resource
    return None


def validate_instance(root: str | Path, manifest: InstallationManifest) -> bool:
    """Check that *root* contains every resource of a valid installation.

    Stops at the first missing resource and logs it together with the
    root that failed.
    """
    missing = find_missing_resource(root, manifest)
    if missing is not None:
        log.error("instance_invalid", path=str(root), missing_resource=missing)
        return False
    return True
