"""
Pytest configuration and shared fixtures for pocketbase-bin tests.
"""

import io
import zipfile
from pathlib import Path
from typing import Callable, Dict

import pytest

from pocketbase_bin.config import ProvisionConfig
from pocketbase_bin.core.platform import PlatformTriple

RELEASE_API_URL = "https://api.github.com/repos/zhigang1992/pocketbase/releases/latest"
DOWNLOAD_BASE = "https://github.com/zhigang1992/pocketbase/releases/download"


def _asset_url(version: str, suffix: str = "linux_amd64") -> str:
    return f"{DOWNLOAD_BASE}/{version}/pocketbase_{suffix}.zip"


def _build_zip(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def install_root(tmp_path: Path) -> Path:
    """Empty directory used as the install root."""
    root = tmp_path / "work"
    root.mkdir()
    return root


@pytest.fixture
def config() -> ProvisionConfig:
    """Default configuration with no environment override."""
    return ProvisionConfig()


@pytest.fixture
def linux_amd64() -> PlatformTriple:
    return PlatformTriple("linux", "amd64", "")


@pytest.fixture
def windows_amd64() -> PlatformTriple:
    return PlatformTriple("windows", "amd64", ".exe")


@pytest.fixture
def release_zip() -> Callable[..., bytes]:
    """Factory for release-shaped archives."""

    def factory(binary_name: str = "pocketbase", payload: bytes = b"#!pb\n" * 64):
        return _build_zip(
            {
                binary_name: payload,
                "CHANGELOG.md": b"# Changelog\n",
                "LICENSE.md": b"MIT\n",
            }
        )

    return factory


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables that influence version resolution."""
    monkeypatch.delenv("POCKETBASE_VERSION", raising=False)


@pytest.fixture(autouse=True)
def reset_caches():
    """Reset module-level caches between tests."""
    from pocketbase_bin.core import platform

    platform.clear_platform_cache()
    yield
    platform.clear_platform_cache()


@pytest.fixture
def zip_bytes() -> Callable[[Dict[str, bytes]], bytes]:
    """Build an in-memory ZIP archive from name -> content."""
    return _build_zip


@pytest.fixture
def asset_url() -> Callable[..., str]:
    """Release archive URL for the default configuration."""
    return _asset_url


@pytest.fixture
def release_api_url() -> str:
    return RELEASE_API_URL
