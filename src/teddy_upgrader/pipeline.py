"""Upgrade pipeline orchestration.

Lifecycle:
1. Validate the installation path and resolve installed/latest versions
2. Confirm with the operator and download the release artifacts
3. Verify the archive checksum, extract it and validate the extraction
4. Back up the instance, then delete and replace managed resources
5. Validate the upgraded instance and install its dependencies
6. Remove the download directory (and the backup, if requested)

Each stage only runs when the previous one succeeded. Nothing is rolled
back automatically; the backup directory is the recovery path.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import httpx

from teddy_upgrader import __version__
from teddy_upgrader.backup import backup_instance, create_backup_dir, delete_directory
from teddy_upgrader.config import Settings
from teddy_upgrader.errors import ExtractionError
from teddy_upgrader.extractor import extract_archive_async
from teddy_upgrader.installer import install_dependencies
from teddy_upgrader.integrity import verify_archive
from teddy_upgrader.logging import get_logger
from teddy_upgrader.prompt import confirm_upgrade
from teddy_upgrader.release import ReleaseDescriptor, create_download_dir, download_release
from teddy_upgrader.replacer import copy_pairs, copy_resources, delete_resources, deletion_targets
from teddy_upgrader.validator import validate_instance
from teddy_upgrader.versions import (
    Version,
    VersionCheck,
    fetch_latest_version,
    read_current_version,
)

log = get_logger("teddy_upgrader.pipeline")

STAGES = (
    "Validating the path",
    "Identifying the current version number",
    "Identifying the latest version number",
    "Comparing version numbers",
    "Awaiting confirmation to upgrade",
    "Creating the download directory",
    "Generating the download URLs",
    "Downloading the release",
    "Verifying the download integrity",
    "Extracting the download",
    "Verifying the extraction",
    "Creating the backup directory",
    "Creating a backup of the Teddy instance",
    "Deleting resources from the Teddy instance",
    "Copying upgraded resources to the Teddy instance",
    "Verifying the upgrade",
    "Installing upgraded dependencies",
)

EXPECTED_DOWNLOADS = 2


@dataclass
class UpgradeState:
    """Run-scoped record of gate flags and derived paths."""

    path: Path
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    status_code: int = 1
    path_is_valid: bool = False
    current_version: Version | None = None
    latest_version: Version | None = None
    new_version_available: bool = False
    upgrade_confirmed: bool = False
    release: ReleaseDescriptor | None = None
    downloaded_file_count: int = 0
    download_verified: bool = False
    extract_is_valid: bool = False
    backup_dir: Path | None = None
    upgrade_is_valid: bool = False
    dependencies_installed: bool | None = None
    steps_completed: list[str] = field(default_factory=list)

    @property
    def download_dir(self) -> Path | None:
        return self.release.download_dir if self.release else None

    @property
    def extract_dir(self) -> Path | None:
        return self.release.extract_dir if self.release else None


class Upgrader:
    """Runs the upgrade pipeline against one installation."""

    def __init__(
        self,
        path: str | Path,
        settings: Settings,
        *,
        delete_backup: bool = False,
        assume_yes: bool = False,
        confirm: Callable[[str, str, str], bool] = confirm_upgrade,
        transport: httpx.AsyncBaseTransport | None = None,
        started_at: datetime | None = None,
    ) -> None:
        self._settings = settings
        self._manifest = settings.manifest
        self._delete_backup = delete_backup
        self._assume_yes = assume_yes
        self._confirm = confirm
        self._transport = transport
        self.state = UpgradeState(path=Path(path), started_at=started_at or datetime.now(UTC))

    @property
    def status_code(self) -> int:
        return self.state.status_code

    # ------------------------------------------------------------------
    # Primary flow
    # ------------------------------------------------------------------

    async def upgrade(self) -> int:
        """Run every stage in order and return the process exit status."""
        try:
            async with self._make_client() as client:
                await self._run(client)
            if self.state.status_code != 0:
                self._log_recovery_help()
        except Exception:
            self.state.status_code = 1
            log.exception("upgrade_pipeline_error", path=str(self.state.path))
            self._log_recovery_help()
        finally:
            self._cleanup()
        return self.state.status_code

    async def _run(self, client: httpx.AsyncClient) -> None:
        state = self.state
        settings = self._settings
        log.info("teddy_path", path=str(state.path))

        self._stage(1)
        state.path_is_valid = validate_instance(state.path, self._manifest)
        if not state.path_is_valid:
            return
        self._done("validate_path")

        self._stage(2)
        state.current_version = read_current_version(
            state.path, settings.version_file, settings.version_field
        )
        self._done("read_current_version")

        self._stage(3)
        state.latest_version = await fetch_latest_version(client, settings.releases_latest_url)
        self._done("resolve_latest_version")

        self._stage(4)
        check = VersionCheck(current=state.current_version, latest=state.latest_version)
        if not check.resolved:
            log.warning(
                "version_unresolved",
                current_version=_fmt(state.current_version),
                latest_version=_fmt(state.latest_version),
            )
        state.new_version_available = check.new_version_available
        if not state.new_version_available:
            state.status_code = 0
            log.info(
                "already_latest",
                message="No updates found. The instance of Teddy is already "
                "using the latest available version.",
                path=str(state.path),
                current_version=_fmt(state.current_version),
            )
            return
        self._done("compare_versions")

        self._stage(5)
        state.upgrade_confirmed = self._assume_yes or self._confirm(
            str(state.current_version),
            str(state.latest_version),
            settings.releases_notes_url,
        )
        if not state.upgrade_confirmed:
            log.info("upgrade_declined")
            return
        self._done("confirm")

        self._stage(6)
        assert state.latest_version is not None
        state.release = ReleaseDescriptor.for_version(state.latest_version, settings)
        create_download_dir(state.release)
        self._done("create_download_dir")

        self._stage(7)
        release = state.release
        log.debug(
            "download_urls",
            archive=release.archive_url,
            checksums=release.checksums_url,
            release_url=release.release_url,
        )
        self._done("generate_urls")

        self._stage(8, version=release.version)
        state.downloaded_file_count = await download_release(
            client, release, chunk_size=settings.download_chunk_size
        )
        if state.downloaded_file_count != EXPECTED_DOWNLOADS:
            log.error(
                "release_download_failed",
                base_url=release.download_base_url,
                downloaded=state.downloaded_file_count,
            )
            return
        self._done("download")

        self._stage(9)
        state.download_verified = verify_archive(
            release.archive_path, release.checksums_path, release.archive_filename
        )
        if not state.download_verified:
            log.error("download_verification_failed", archive=str(release.archive_path))
            return
        self._done("verify_download")

        self._stage(10)
        try:
            await extract_archive_async(release.archive_path, release.extract_dir)
        except ExtractionError as exc:
            log.error("extraction_failed", error=str(exc))
            return
        self._done("extract")

        self._stage(11)
        state.extract_is_valid = release.extract_dir.exists() and validate_instance(
            release.extract_dir, self._manifest
        )
        if not state.extract_is_valid:
            return
        self._done("verify_extraction")

        self._stage(12)
        state.backup_dir = create_backup_dir(settings.backup_dir, state.started_at)
        self._done("create_backup_dir")

        self._stage(13)
        backup_instance(
            state.path,
            state.backup_dir,
            settings.dependency_cache_dir,
            skip=(settings.backup_dir, settings.download_dir),
        )
        self._done("backup")

        self._stage(14)
        delete_resources(
            deletion_targets(state.path, self._manifest, settings.generated_directories)
        )
        self._done("delete_resources")

        self._stage(15)
        copy_resources(copy_pairs(release.extract_dir, state.path, self._manifest))
        self._done("copy_resources")

        self._stage(16)
        state.upgrade_is_valid = validate_instance(state.path, self._manifest)
        if not state.upgrade_is_valid:
            return
        self._done("verify_upgrade")

        self._stage(17)
        state.dependencies_installed = await install_dependencies(
            state.path, settings.install_command, timeout=settings.install_timeout_seconds
        )
        self._done("install_dependencies")

        state.status_code = 0
        log.info(
            "upgrade_complete",
            message="Successfully finished upgrading Teddy!",
            path=str(state.path),
            old_version=_fmt(state.current_version),
            new_version=_fmt(state.latest_version),
            release_notes=release.release_url,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _make_client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(
            retries=self._settings.http_retries
        )
        return httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds,
            transport=transport,
            headers={"User-Agent": f"teddy-upgrader/{__version__}"},
        )

    def _stage(self, index: int, **context: object) -> None:
        log.info(
            "upgrade_stage",
            stage=f"{index} of {len(STAGES)}",
            label=STAGES[index - 1],
            **context,
        )

    def _done(self, step: str) -> None:
        self.state.steps_completed.append(step)

    def _log_recovery_help(self) -> None:
        log.error(
            "upgrade_manual_recovery",
            message="If this error persists, please manually download and "
            f"upgrade Teddy from {self._settings.releases_notes_url}.",
        )
        if self.state.backup_dir is not None:
            log.info(
                "backup_location",
                message="The backup of your original Teddy instance may be "
                f"found in '{self.state.backup_dir}'.",
            )

    def _cleanup(self) -> None:
        delete_directory(self.state.download_dir, "download")
        if self._delete_backup and self.state.upgrade_is_valid and self.state.status_code == 0:
            delete_directory(self.state.backup_dir, "backup")


def _fmt(version: Version | None) -> str | None:
    return str(version) if version is not None else None
