"""Release descriptor and artifact downloads."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from teddy_upgrader.config import Settings
from teddy_upgrader.logging import get_logger
from teddy_upgrader.versions import Version

log = get_logger("teddy_upgrader.release")


@dataclass(frozen=True)
class ReleaseDescriptor:
    """URLs and local paths for one release's artifacts."""

    version: str  # normalised, no 'v' prefix
    download_base_url: str
    archive_filename: str
    checksums_filename: str
    release_url: str
    download_dir: Path
    extract_dir: Path

    @classmethod
    def for_version(cls, version: Version | str, settings: Settings) -> ReleaseDescriptor:
        """Derive the descriptor for *version* from the configured templates."""
        v = str(version)
        download_dir = Path(settings.download_dir) / v
        return cls(
            version=v,
            download_base_url=settings.download_base_url.replace("{version}", v),
            archive_filename=settings.archive_filename.replace("{version}", v),
            checksums_filename=settings.checksums_filename.replace("{version}", v),
            release_url=settings.release_tag_url.replace("{version}", v),
            download_dir=download_dir,
            extract_dir=download_dir / settings.archive_root_name.replace("{version}", v),
        )

    @property
    def archive_url(self) -> str:
        return self.url_for(self.archive_filename)

    @property
    def checksums_url(self) -> str:
        return self.url_for(self.checksums_filename)

    @property
    def archive_path(self) -> Path:
        return self.download_dir / self.archive_filename

    @property
    def checksums_path(self) -> Path:
        return self.download_dir / self.checksums_filename

    def url_for(self, filename: str) -> str:
        return f"{self.download_base_url.rstrip('/')}/{filename}"


def create_download_dir(release: ReleaseDescriptor) -> Path:
    """Create the per-version staging directory (idempotent)."""
    release.download_dir.mkdir(parents=True, exist_ok=True)
    return release.download_dir


async def download_file(
    client: httpx.AsyncClient,
    url: str,
    destination: Path,
    chunk_size: int = 64 * 1024,
) -> bool:
    """Stream *url* to *destination* without buffering the whole body.

    Returns True only when a 2xx response was written completely.
    """
    try:
        async with client.stream("GET", url, follow_redirects=True) as resp:
            if not resp.is_success:
                log.error(
                    "download_rejected",
                    url=url,
                    status=resp.status_code,
                    reason=resp.reason_phrase,
                )
                return False
            with destination.open("wb") as fh:
                async for chunk in resp.aiter_bytes(chunk_size):
                    fh.write(chunk)
    except httpx.HTTPError as exc:
        log.error("download_failed", url=url, error=str(exc))
        return False
    except OSError as exc:
        log.error("download_write_failed", url=url, path=str(destination), error=str(exc))
        return False

    log.debug("download_complete", url=url, path=str(destination))
    return True


async def download_release(
    client: httpx.AsyncClient, release: ReleaseDescriptor, chunk_size: int = 64 * 1024
) -> int:
    """Download the archive and checksums files; return how many succeeded."""
    downloaded = 0
    for filename in (release.archive_filename, release.checksums_filename):
        ok = await download_file(
            client,
            release.url_for(filename),
            release.download_dir / filename,
            chunk_size=chunk_size,
        )
        if ok:
            downloaded += 1
    return downloaded
