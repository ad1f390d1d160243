"""SHA-256 verification of downloaded release archives."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

from teddy_upgrader.logging import get_logger

log = get_logger("teddy_upgrader.integrity")

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def sha256_file(path: str | Path, chunk_size: int = 1024 * 1024) -> str:
    """Return the lowercase hex SHA-256 digest of a file."""
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def matching_checksum_lines(checksums_text: str, filename: str) -> list[str]:
    """Return the manifest lines that mention *filename*."""
    return [line for line in _LINE_SPLIT_RE.split(checksums_text) if filename in line]


def expected_digest(checksums_text: str, filename: str) -> str | None:
    """Return the digest recorded for *filename*.

    Exactly one line must reference the filename; otherwise None.
    """
    lines = matching_checksum_lines(checksums_text, filename)
    if len(lines) != 1:
        return None
    tokens = lines[0].split()
    return tokens[0].strip() if tokens else None


def verify_archive(archive_path: str | Path, checksums_path: str | Path, filename: str) -> bool:
    """Check the archive digest against its checksums manifest entry.

    The comparison is an exact, case-sensitive match of the hex digest.
    """
    try:
        checksums_text = Path(checksums_path).read_text(encoding="utf-8")
        actual = sha256_file(archive_path)
    except (OSError, UnicodeDecodeError) as exc:
        log.error("integrity_read_failed", error=str(exc))
        return False

    expected = expected_digest(checksums_text, filename)
    if expected is None:
        log.error(
            "integrity_checksum_entry_invalid",
            filename=filename,
            matches=len(matching_checksum_lines(checksums_text, filename)),
        )
        return False

    if actual != expected:
        log.error("integrity_digest_mismatch", filename=filename)
        return False
    return True
