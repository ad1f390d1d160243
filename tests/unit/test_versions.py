"""Unit tests for version parsing, comparison and resolution."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from teddy_upgrader.errors import VersionFileError
from teddy_upgrader.versions import (
    Version,
    VersionCheck,
    extract_release_version,
    fetch_latest_version,
    is_newer,
    load_version_file,
    parse_semver,
    read_current_version,
)

LATEST_URL = "https://api.example.test/releases/latest"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# parse_semver
# ---------------------------------------------------------------------------


class TestParseSemver:
    """Tests for parse_semver()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1.2.3", "1.2.3"),
            ("v1.3.0", "1.3.0"),
            ("  =v2.0.0  ", "2.0.0"),
            ("1.2.0-beta", "1.2.0-beta"),
            ("1.2.0-rc.1+build.5", "1.2.0-rc.1"),
        ],
    )
    def test_valid_versions(self, raw: str, expected: str) -> None:
        version = parse_semver(raw)
        assert version is not None
        assert str(version) == expected

    @pytest.mark.parametrize("raw", ["", None, "latest", "1.2", "v1", "1.2.3.4", "01.2.3"])
    def test_invalid_versions(self, raw: str | None) -> None:
        assert parse_semver(raw) is None

    def test_build_metadata_kept_but_ignored_for_equality(self) -> None:
        a = parse_semver("1.0.0+abc")
        b = parse_semver("1.0.0+def")
        assert a is not None and b is not None
        assert a.build == ("abc",)
        assert a == b


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    """Tests for semver precedence."""

    def test_equal_versions_are_not_newer(self) -> None:
        assert is_newer(parse_semver("1.3.0"), parse_semver("v1.3.0")) is False

    def test_prerelease_lower_than_release(self) -> None:
        assert parse_semver("1.2.0-beta") < parse_semver("1.2.0")
        assert is_newer(parse_semver("1.2.0"), parse_semver("1.2.0-beta")) is True
        assert is_newer(parse_semver("1.2.0-beta"), parse_semver("1.2.0")) is False

    def test_semver_spec_precedence_chain(self) -> None:
        chain = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        versions = [parse_semver(v) for v in chain]
        assert versions == sorted(versions)
        for lower, higher in zip(versions, versions[1:]):
            assert lower < higher

    def test_numeric_components_compare_numerically(self) -> None:
        assert parse_semver("1.10.0") > parse_semver("1.9.9")

    def test_unresolved_versions_never_newer(self) -> None:
        assert is_newer(None, parse_semver("1.0.0")) is False
        assert is_newer(parse_semver("1.0.0"), None) is False

    def test_version_check(self) -> None:
        check = VersionCheck(current=parse_semver("1.2.0"), latest=parse_semver("1.3.0"))
        assert check.resolved is True
        assert check.new_version_available is True

        unresolved = VersionCheck(current=None, latest=parse_semver("1.3.0"))
        assert unresolved.resolved is False
        assert unresolved.new_version_available is False


# ---------------------------------------------------------------------------
# Installed version
# ---------------------------------------------------------------------------


class TestCurrentVersion:
    """Tests for reading the installed version."""

    def test_reads_package_json(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"version": "1.2.0"}))
        assert read_current_version(tmp_path) == Version(1, 2, 0)

    def test_missing_file_is_unresolved(self, tmp_path: Path) -> None:
        assert read_current_version(tmp_path) is None

    def test_malformed_json_is_unresolved(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{not json")
        assert read_current_version(tmp_path) is None

    def test_non_semver_is_unresolved(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"version": "latest"}))
        assert read_current_version(tmp_path) is None

    def test_load_version_file_raises_without_field(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"name": "teddy"}))
        with pytest.raises(VersionFileError, match="version"):
            load_version_file(tmp_path, "package.json", "version")

    def test_custom_field(self, tmp_path: Path) -> None:
        (tmp_path / "meta.json").write_text(json.dumps({"release": "v3.1.4"}))
        assert read_current_version(tmp_path, "meta.json", "release") == Version(3, 1, 4)


# ---------------------------------------------------------------------------
# Latest release
# ---------------------------------------------------------------------------


class TestExtractReleaseVersion:
    """Tests for extract_release_version()."""

    def test_prefers_tag_name(self) -> None:
        assert extract_release_version({"tag_name": "v1.3.0", "name": "Teddy 1.3"}) == "v1.3.0"

    def test_falls_back_to_name(self) -> None:
        assert extract_release_version({"name": "v1.3.0"}) == "v1.3.0"

    def test_missing_fields(self) -> None:
        assert extract_release_version({"body": "notes"}) is None
        assert extract_release_version(["v1.0.0"]) is None


class TestFetchLatestVersion:
    """Tests for fetch_latest_version()."""

    async def test_success(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == LATEST_URL
            return httpx.Response(200, json={"tag_name": "v1.3.0"})

        async with _client(handler) as client:
            assert await fetch_latest_version(client, LATEST_URL) == Version(1, 3, 0)

    async def test_non_2xx_is_unresolved(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Not Found"})

        async with _client(handler) as client:
            assert await fetch_latest_version(client, LATEST_URL) is None

    async def test_transport_error_is_unresolved(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            assert await fetch_latest_version(client, LATEST_URL) is None

    async def test_invalid_json_is_unresolved(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        async with _client(handler) as client:
            assert await fetch_latest_version(client, LATEST_URL) is None

    async def test_non_semver_tag_is_unresolved(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"tag_name": "nightly"})

        async with _client(handler) as client:
            assert await fetch_latest_version(client, LATEST_URL) is None

    async def test_single_request(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        async with _client(handler) as client:
            await fetch_latest_version(client, LATEST_URL)

        assert len(calls) == 1
