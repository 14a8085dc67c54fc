"""
Installed-version bookkeeping.

A plain-text marker file next to the binary records which release is
installed. The cache is considered valid only when both the binary and the
marker exist and the marker names exactly the version being asked for; any
other condition triggers a full reinstall.

Example:
    >>> marker = VersionMarker(Path('/work/.pocketbase-version'))
    >>> marker.write('0.22.0')
    >>> marker.read()
    '0.22.0'
"""

import logging
from pathlib import Path
from typing import Optional

from pocketbase_bin.core.artifact import ArtifactLocation
from pocketbase_bin.core.filesystem import atomic_write, read_text

logger = logging.getLogger(__name__)


class VersionMarker:
    """
    Reads and writes the installed-version marker.

    Attributes:
        path: Location of the marker file
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        """
        Read the recorded version.

        Returns:
            Stripped version string, or None if the marker is missing,
            unreadable or empty
        """
        content = read_text(self.path)
        if content is None:
            return None
        version = content.strip()
        return version or None

    def write(self, version: str) -> None:
        """
        Record version as installed, replacing any previous record.

        Raises:
            ValueError: If version is empty
            FilesystemError: If the marker cannot be written
        """
        if not version or not version.strip():
            raise ValueError("Version cannot be empty")
        atomic_write(self.path, version.strip())
        logger.debug(f"Wrote version marker {self.path} ({version})")


def is_up_to_date(location: ArtifactLocation) -> bool:
    """
    Check whether the installed binary matches location.version.

    Args:
        location: Resolved artifact location

    Returns:
        True only if the binary and marker both exist and the marker holds
        exactly the target version
    """
    if not location.binary_path.is_file():
        logger.debug(f"Binary missing: {location.binary_path}")
        return False

    if not location.version_marker_path.is_file():
        logger.debug(f"Version marker missing: {location.version_marker_path}")
        return False

    current = VersionMarker(location.version_marker_path).read()
    if current is None:
        logger.info(f"Unreadable version marker: {location.version_marker_path}")
        return False

    if current != location.version:
        logger.info(
            f"Version mismatch: current={current}, requested={location.version}"
        )
        return False

    return True
