"""Version resolution for the installed instance and the latest release.

Both versions are normalized to semantic versions before comparison. A
version that cannot be read or parsed is reported as ``None`` and never
compared; the caller treats that as "no upgrade available".
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from functools import total_ordering
from pathlib import Path
from typing import Any

import httpx

from teddy_upgrader.errors import VersionFileError
from teddy_upgrader.logging import get_logger

log = get_logger("teddy_upgrader.versions")

# Semver with optional leading '=' / 'v' and surrounding whitespace
_SEMVER_RE = re.compile(
    r"^[=vV\s]*(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?\s*$"
)


def _identifier_key(identifier: str) -> tuple[int, int, str]:
    # Numeric identifiers sort numerically and below alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


@total_ordering
@dataclass(frozen=True)
class Version:
    """A normalized semantic version.

    Build metadata is kept for display but ignored for ordering and
    equality, following semver precedence rules.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text

    @property
    def precedence_key(self) -> tuple[Any, ...]:
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())
        ids = tuple(_identifier_key(i) for i in self.prerelease)
        return (self.major, self.minor, self.patch, 0, ids)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.precedence_key < other.precedence_key


def parse_semver(version_str: str | None) -> Version | None:
    """Parse a raw tag or version string into a ``Version``.

    Returns None if the string is not valid semver.
    """
    if not version_str:
        return None
    m = _SEMVER_RE.match(version_str)
    if m is None:
        return None
    pre = m.group("pre")
    build = m.group("build")
    return Version(
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=int(m.group("patch")),
        prerelease=tuple(pre.split(".")) if pre else (),
        build=tuple(build.split(".")) if build else (),
    )


def is_newer(candidate: Version | None, current: Version | None) -> bool:
    """Return True if *candidate* is strictly newer than *current*."""
    if candidate is None or current is None:
        return False
    return candidate > current


@dataclass(frozen=True)
class VersionCheck:
    """Outcome of resolving the installed and latest versions."""

    current: Version | None
    latest: Version | None

    @property
    def resolved(self) -> bool:
        return self.current is not None and self.latest is not None

    @property
    def new_version_available(self) -> bool:
        return is_newer(self.latest, self.current)


# ------------------------------------------------------------------
# Installed version
# ------------------------------------------------------------------


def load_version_file(root: str | Path, version_file: str, version_field: str) -> str:
    """Read the raw version string from the installation's version file."""
    path = Path(root) / version_file
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise VersionFileError(f"Cannot read version file {path}: {exc}") from exc

    if not isinstance(data, dict) or not data.get(version_field):
        raise VersionFileError(f"No '{version_field}' field in {path}")
    return str(data[version_field])


def read_current_version(
    root: str | Path, version_file: str = "package.json", version_field: str = "version"
) -> Version | None:
    """Return the normalized installed version, or None if unresolved."""
    try:
        raw = load_version_file(root, version_file, version_field)
    except VersionFileError as exc:
        log.error("current_version_unreadable", path=str(root), error=str(exc))
        return None

    version = parse_semver(raw)
    if version is None:
        log.error("current_version_invalid", raw=raw)
    return version


# ------------------------------------------------------------------
# Latest release
# ------------------------------------------------------------------


def extract_release_version(metadata: Any) -> str | None:
    """Pick the version identifier from release metadata.

    ``tag_name`` is preferred; ``name`` is used when no tag is present.
    """
    if not isinstance(metadata, dict):
        return None
    raw = metadata.get("tag_name") or metadata.get("name")
    return str(raw) if raw else None


async def fetch_latest_version(client: httpx.AsyncClient, url: str) -> Version | None:
    """Query the release index for the latest published version.

    A single GET is issued. Non-2xx responses, transport errors and
    unparseable bodies are logged and reported as None.
    """
    try:
        resp = await client.get(url, headers={"Accept": "application/vnd.github+json"})
    except httpx.HTTPError as exc:
        log.error("latest_version_request_failed", url=url, error=str(exc))
        return None

    if not resp.is_success:
        log.error(
            "latest_version_request_rejected",
            url=url,
            status=resp.status_code,
            reason=resp.reason_phrase,
        )
        return None

    try:
        metadata = resp.json()
    except ValueError:
        log.error("latest_version_invalid_json", url=url)
        return None

    raw = extract_release_version(metadata)
    if raw is None:
        log.error("latest_version_missing", url=url)
        return None

    version = parse_semver(raw)
    if version is None:
        log.error("latest_version_invalid", raw=raw)
    return version
