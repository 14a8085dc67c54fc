"""
Filesystem and URL layout of a provisioned binary.
"""

from dataclasses import dataclass
from pathlib import Path

from pocketbase_bin.core.platform import PlatformTriple


@dataclass(frozen=True)
class ArtifactLocation:
    """
    Where a specific version of the binary comes from and where it lives.

    Recomputed on every invocation; never persisted.

    Attributes:
        version: Resolved version the location was derived for
        binary_name: Executable filename ('pocketbase' or 'pocketbase.exe')
        binary_path: Absolute path of the installed executable
        download_url: Release archive URL
        version_marker_path: Absolute path of the installed-version marker
        archive_path: Temporary path the archive is downloaded to
    """

    version: str
    binary_name: str
    binary_path: Path
    download_url: str
    version_marker_path: Path
    archive_path: Path


def build_artifact_location(
    config, triple: PlatformTriple, version: str, install_root: Path
) -> ArtifactLocation:
    """
    Derive the artifact location for a platform and version.

    Args:
        config: ProvisionConfig supplying naming and URLs
        triple: Target platform
        version: Resolved version
        install_root: Directory that holds the binary and its marker

    Returns:
        ArtifactLocation with absolute paths
    """
    if not version:
        raise ValueError("Version cannot be empty")

    root = Path(install_root).resolve()
    binary_name = triple.binary_name(config.binary_prefix)

    return ArtifactLocation(
        version=version,
        binary_name=binary_name,
        binary_path=root / binary_name,
        download_url=config.asset_url(version, triple.asset_suffix),
        version_marker_path=root / config.marker_filename,
        archive_path=root / f"{config.binary_prefix}.zip",
    )
