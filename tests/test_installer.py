"""
Tests for BinaryInstaller.

All network traffic is mocked with responses; archives are built in memory.
"""

import os
import sys
import threading

import pytest
import requests
import responses

from pocketbase_bin.config import DEFAULT_VERSION, load_config
from pocketbase_bin.core.exceptions import (
    DownloadCancelledError,
    EntryNotFoundError,
    HttpStatusError,
    NetworkError,
)
from pocketbase_bin.installer import BinaryInstaller, InstallState, ensure_binary

CDN_URL = "https://objects.githubusercontent.com/github-production-release-asset/pb"


@pytest.fixture
def installer(config, install_root, linux_amd64):
    return BinaryInstaller(config, install_root, platform=linux_amd64)


def _serve(url, body, redirect=True):
    """Register the release URL, optionally behind a CDN redirect."""
    if redirect:
        responses.add(responses.GET, url, status=302, headers={"Location": CDN_URL})
        url = CDN_URL
    responses.add(
        responses.GET, url, body=body, headers={"Content-Length": str(len(body))}
    )


def _preinstall(root, version, payload=b"old binary", name="pocketbase"):
    (root / name).write_bytes(payload)
    (root / ".pocketbase-version").write_text(version)


class TestFreshInstall:
    """Test installing into an empty root."""

    @responses.activate
    def test_install_explicit_version(
        self, installer, install_root, asset_url, release_zip
    ):
        """Test download, extraction and version marker for 0.22.0."""
        _serve(asset_url("0.22.0"), release_zip(payload=b"pocketbase 0.22.0"))

        binary = installer.ensure("0.22.0")

        root = install_root.resolve()
        assert binary == root / "pocketbase"
        assert binary.read_bytes() == b"pocketbase 0.22.0"
        assert (root / ".pocketbase-version").read_text() == "0.22.0"
        assert not (root / "pocketbase.zip").exists()
        assert not (root / "CHANGELOG.md").exists()
        assert installer.state == InstallState.INSTALLED
        assert len(responses.calls) == 2

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    @responses.activate
    def test_binary_is_executable(self, installer, asset_url, release_zip):
        _serve(asset_url("0.22.0"), release_zip())

        binary = installer.ensure("0.22.0")

        assert os.access(binary, os.X_OK)

    @responses.activate
    def test_install_latest(self, installer, asset_url, release_api_url, release_zip):
        """Test the latest release tag is used when nothing is requested."""
        responses.add(responses.GET, release_api_url, json={"tag_name": "v0.23.1"})
        _serve(asset_url("0.23.1"), release_zip())

        installer.ensure()

        assert installer.installed_version() == "0.23.1"
        assert responses.calls[1].request.url == asset_url("0.23.1")

    @responses.activate
    def test_install_fallback(self, installer, asset_url, release_api_url, release_zip):
        """Test a failed lookup installs the pinned version."""
        responses.add(responses.GET, release_api_url, status=500)
        _serve(asset_url(DEFAULT_VERSION), release_zip())

        installer.ensure()

        assert installer.installed_version() == DEFAULT_VERSION

    @responses.activate
    def test_install_environment_version(
        self, install_root, linux_amd64, asset_url, release_zip
    ):
        config = load_config(environ={"POCKETBASE_VERSION": "0.21.0"})
        installer = BinaryInstaller(config, install_root, platform=linux_amd64)
        _serve(asset_url("0.21.0"), release_zip(), redirect=False)

        installer.ensure()

        assert installer.installed_version() == "0.21.0"
        assert len(responses.calls) == 1

    @responses.activate
    def test_install_windows(
        self, config, install_root, windows_amd64, asset_url, release_zip
    ):
        """Test the Windows archive and binary name."""
        installer = BinaryInstaller(config, install_root, platform=windows_amd64)
        _serve(
            asset_url("0.22.0", "windows_amd64"),
            release_zip(binary_name="pocketbase.exe"),
        )

        binary = installer.ensure("0.22.0")

        assert binary.name == "pocketbase.exe"
        assert binary.exists()

    @responses.activate
    def test_creates_install_root(
        self, config, tmp_path, linux_amd64, asset_url, release_zip
    ):
        root = tmp_path / "does" / "not" / "exist"
        installer = BinaryInstaller(config, root, platform=linux_amd64)
        _serve(asset_url("0.22.0"), release_zip())

        binary = installer.ensure("0.22.0")

        assert binary.parent == root.resolve()

    @responses.activate
    def test_user_agent(self, installer, asset_url, release_zip):
        _serve(asset_url("0.22.0"), release_zip(), redirect=False)

        installer.ensure("0.22.0")

        assert responses.calls[0].request.headers["User-Agent"] == (
            "pocketbase-bin-python"
        )


class TestCache:
    """Test the cache check."""

    @responses.activate
    def test_cached_version_no_network(self, installer, install_root):
        """Test a matching install makes no HTTP request."""
        _preinstall(install_root, "0.22.0")

        binary = installer.ensure("0.22.0")

        assert binary == install_root.resolve() / "pocketbase"
        assert binary.read_bytes() == b"old binary"
        assert installer.state == InstallState.CACHE_VALID
        assert len(responses.calls) == 0

    @responses.activate
    def test_padded_request_matches_cache(self, installer, install_root):
        """Test a version with surrounding whitespace hits the cached install."""
        _preinstall(install_root, "0.22.0")

        binary = installer.ensure(" 0.22.0\n")

        assert binary.read_bytes() == b"old binary"
        assert installer.state == InstallState.CACHE_VALID
        assert len(responses.calls) == 0

    @responses.activate
    def test_cached_environment_version(self, install_root, linux_amd64):
        config = load_config(environ={"POCKETBASE_VERSION": "0.22.0"})
        installer = BinaryInstaller(config, install_root, platform=linux_amd64)
        _preinstall(install_root, "0.22.0\n")

        installer.ensure()

        assert installer.state == InstallState.CACHE_VALID
        assert len(responses.calls) == 0

    @responses.activate
    def test_version_mismatch_reinstalls(
        self, installer, install_root, asset_url, release_zip
    ):
        """Test a different installed version is replaced."""
        _preinstall(install_root, "0.21.0")
        _serve(asset_url("0.22.0"), release_zip(payload=b"new binary"))

        binary = installer.ensure("0.22.0")

        assert binary.read_bytes() == b"new binary"
        assert installer.installed_version() == "0.22.0"
        assert installer.state == InstallState.INSTALLED

    @responses.activate
    def test_missing_marker_reinstalls(
        self, installer, install_root, asset_url, release_zip
    ):
        (install_root / "pocketbase").write_bytes(b"unknown")
        _serve(asset_url("0.22.0"), release_zip())

        installer.ensure("0.22.0")

        assert installer.installed_version() == "0.22.0"

    @responses.activate
    def test_missing_binary_reinstalls(
        self, installer, install_root, asset_url, release_zip
    ):
        (install_root / ".pocketbase-version").write_text("0.22.0")
        _serve(asset_url("0.22.0"), release_zip())

        binary = installer.ensure("0.22.0")

        assert binary.exists()

    @responses.activate
    def test_force(self, installer, install_root, asset_url, release_zip):
        """Test force reinstalls a valid cache."""
        _preinstall(install_root, "0.22.0")
        _serve(asset_url("0.22.0"), release_zip(payload=b"fresh"))

        binary = installer.ensure("0.22.0", force=True)

        assert binary.read_bytes() == b"fresh"
        assert installer.state == InstallState.INSTALLED

    @responses.activate
    def test_install_is_idempotent(self, installer, asset_url, release_zip):
        _serve(asset_url("0.22.0"), release_zip())

        installer.ensure("0.22.0")
        installer.ensure("0.22.0")

        assert installer.state == InstallState.CACHE_VALID
        assert len(responses.calls) == 2


class TestFailures:
    """Test failure handling and cleanup."""

    @responses.activate
    def test_http_404(self, installer, install_root, asset_url):
        """Test a missing release fails with no marker written."""
        responses.add(responses.GET, asset_url("9.9.9"), status=404)

        with pytest.raises(HttpStatusError) as exc_info:
            installer.ensure("9.9.9")

        assert exc_info.value.status_code == 404
        assert installer.state == InstallState.FAILED
        assert not (install_root / ".pocketbase-version").exists()
        assert not (install_root / "pocketbase.zip").exists()

    @responses.activate
    def test_network_error(self, installer, install_root, asset_url):
        responses.add(
            responses.GET,
            asset_url("0.22.0"),
            body=requests.exceptions.ConnectionError("Connection reset"),
        )

        with pytest.raises(NetworkError):
            installer.ensure("0.22.0")

        assert installer.state == InstallState.FAILED

    @responses.activate
    def test_missing_entry_keeps_previous_install(
        self, installer, install_root, asset_url, zip_bytes
    ):
        """Test a bad archive leaves the old binary and marker untouched."""
        _preinstall(install_root, "0.21.0")
        _serve(asset_url("0.22.0"), zip_bytes({"README.md": b"no binary here"}))

        with pytest.raises(EntryNotFoundError):
            installer.ensure("0.22.0")

        assert (install_root / "pocketbase").read_bytes() == b"old binary"
        assert (install_root / ".pocketbase-version").read_text() == "0.21.0"
        assert not (install_root / "pocketbase.zip").exists()
        assert installer.state == InstallState.FAILED

    @responses.activate
    def test_cancelled(self, installer, install_root):
        """Test a pre-set cancel event stops before any download."""
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(DownloadCancelledError):
            installer.ensure("0.22.0", cancel_event=cancel)

        assert len(responses.calls) == 0
        assert installer.state == InstallState.FAILED
        assert not (install_root / "pocketbase").exists()


class TestResolveLocation:
    """Test location helpers."""

    @responses.activate
    def test_resolve_location(self, installer, install_root, asset_url):
        location = installer.resolve_location("0.22.0")

        assert location.version == "0.22.0"
        assert location.download_url == asset_url("0.22.0")
        assert location.binary_path == install_root.resolve() / "pocketbase"

    def test_installed_version(self, installer, install_root):
        assert installer.installed_version() is None

        _preinstall(install_root, "0.20.1")

        assert installer.installed_version() == "0.20.1"


class TestEnsureBinary:
    """Test the ensure_binary convenience function."""

    @responses.activate
    def test_ensure_binary(
        self, config, install_root, linux_amd64, asset_url, release_zip
    ):
        _serve(asset_url("0.22.0"), release_zip())

        binary = ensure_binary(
            install_root, "0.22.0", config=config, platform=linux_amd64
        )

        assert binary.exists()
        assert (install_root / ".pocketbase-version").read_text() == "0.22.0"

    @responses.activate
    def test_loads_configuration(
        self, install_root, linux_amd64, asset_url, release_zip, clean_env
    ):
        """Test configuration is read from the install root."""
        (install_root / "pocketbase-bin.yaml").write_text(
            "fallback_version: 0.19.0\napi_url: https://api.invalid\n"
        )
        responses.add(
            responses.GET,
            "https://api.invalid/repos/zhigang1992/pocketbase/releases/latest",
            status=503,
        )
        _serve(asset_url("0.19.0"), release_zip())

        binary = ensure_binary(install_root, platform=linux_amd64)

        assert binary.exists()
        assert (install_root / ".pocketbase-version").read_text() == "0.19.0"
