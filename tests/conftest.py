"""Shared fixtures for the upgrader test suite."""

from __future__ import annotations

import io
import json
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

from teddy_upgrader.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _reset_global_config():
    """Isolate tests from cached settings and structlog configuration."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


def make_settings(tmp_path: Path, **overrides) -> Settings:
    """Create Settings rooted in *tmp_path* with file logging disabled.

    ``.env`` loading is disabled (_env_file=None) so that tests are isolated
    from the real environment.
    """
    defaults = {
        "_env_file": None,
        "log_to_file": False,
        "backup_dir": str(tmp_path / "working" / "backups"),
        "download_dir": str(tmp_path / "working" / "downloads"),
        "releases_latest_url": "https://api.example.test/releases/latest",
        "releases_notes_url": "https://example.test/releases",
        "release_tag_url": "https://example.test/releases/tag/v{version}",
        "download_base_url": "https://example.test/releases/download/v{version}",
        "exit_delay_seconds": 0,
    }
    defaults.update(overrides)
    return Settings(**defaults)


@pytest.fixture()
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
    """Factory for Settings with per-test overrides."""

    def _make(**overrides) -> Settings:
        return make_settings(tmp_path, **overrides)

    return _make


@pytest.fixture()
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    return settings_factory()


def build_instance(root: Path, settings: Settings, version: str, marker: str) -> Path:
    """Lay out every manifest resource under *root*.

    Each directory receives a ``marker.txt`` and each file holds *marker*,
    so tests can tell old and new resources apart.
    """
    for directory in settings.resource_directories:
        d = root / directory
        d.mkdir(parents=True, exist_ok=True)
        (d / "marker.txt").write_text(marker, encoding="utf-8")
    for filename in settings.resource_files:
        f = root / filename
        f.parent.mkdir(parents=True, exist_ok=True)
        f.write_text(marker, encoding="utf-8")
    (root / settings.version_file).write_text(
        json.dumps({"name": "teddy", "version": version}), encoding="utf-8"
    )
    return root


@pytest.fixture()
def make_instance(tmp_path: Path, settings: Settings) -> Callable[..., Path]:
    """Factory for a live installation tree."""

    def _make(version: str = "1.2.0", marker: str = "old", name: str = "teddy") -> Path:
        return build_instance(tmp_path / name, settings, version, marker)

    return _make


def zip_directory(source: Path) -> bytes:
    """Zip the contents of *source* (without a top-level folder)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(source.rglob("*")):
            if path.is_file():
                zf.write(path, path.relative_to(source).as_posix())
    return buffer.getvalue()


@pytest.fixture()
def make_release_zip(tmp_path: Path, settings: Settings) -> Callable[..., bytes]:
    """Factory for a release archive containing a full installation."""

    def _make(version: str = "1.3.0", marker: str = "new") -> bytes:
        staging = build_instance(tmp_path / f"release-src-{version}", settings, version, marker)
        return zip_directory(staging)

    return _make
