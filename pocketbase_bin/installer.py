"""
Ensure the PocketBase binary is present and current.

BinaryInstaller ties the core components together:

    resolve version -> check cache -> download -> extract -> record version

A valid cache short-circuits everything after the version check. Errors from
any stage propagate unchanged to the caller.

Usage:
    from pathlib import Path
    from pocketbase_bin.installer import ensure_binary

    binary = ensure_binary(Path.cwd(), requested_version="0.22.0")
"""

import enum
import logging
import threading
from pathlib import Path
from typing import Optional

import requests

from pocketbase_bin.config import ProvisionConfig, load_config
from pocketbase_bin.core.artifact import ArtifactLocation, build_artifact_location
from pocketbase_bin.core.download import Downloader, ProgressCallback
from pocketbase_bin.core.exceptions import DownloadCancelledError, FilesystemError
from pocketbase_bin.core.filesystem import extract_entry, remove_file
from pocketbase_bin.core.platform import PlatformTriple, detect_platform
from pocketbase_bin.core.state import VersionMarker, is_up_to_date
from pocketbase_bin.core.versions import VersionResolver

logger = logging.getLogger(__name__)


class InstallState(enum.Enum):
    """Stages of a single ensure() run."""

    UNCHECKED = "unchecked"
    CACHE_VALID = "cache_valid"
    CACHE_STALE = "cache_stale"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    INSTALLED = "installed"
    FAILED = "failed"


class BinaryInstaller:
    """
    Provisions one versioned binary inside an install root.

    Args:
        config: Provisioning configuration
        install_root: Directory holding the binary, its marker and the
            temporary archive
        platform: Target platform (auto-detected if None)
        session: HTTP session shared by the version lookup and the download
        progress_callback: Optional download progress callback

    Attributes:
        state: InstallState reached by the most recent ensure() call
    """

    def __init__(
        self,
        config: ProvisionConfig,
        install_root: Path,
        platform: Optional[PlatformTriple] = None,
        session: Optional[requests.Session] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.install_root = Path(install_root).resolve()
        self.platform = platform or detect_platform()

        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = config.user_agent
        self.session = session

        self.resolver = VersionResolver.from_config(config, session=session)
        self.downloader = Downloader.from_config(
            config, session=session, progress_callback=progress_callback
        )
        self.state = InstallState.UNCHECKED

    def resolve_location(
        self, requested_version: Optional[str] = None
    ) -> ArtifactLocation:
        """
        Resolve the version and derive where its binary lives.

        Args:
            requested_version: Explicit version override

        Returns:
            ArtifactLocation for the resolved version
        """
        version = self.resolver.resolve(requested_version)
        logger.info(f"Using PocketBase version: {version}")
        return build_artifact_location(
            self.config, self.platform, version, self.install_root
        )

    def installed_version(self) -> Optional[str]:
        """Version recorded in the install root's marker, if any."""
        return VersionMarker(self.install_root / self.config.marker_filename).read()

    def ensure(
        self,
        requested_version: Optional[str] = None,
        force: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> Path:
        """
        Make sure the requested binary is installed.

        Args:
            requested_version: Explicit version override
            force: Reinstall even if the cache is valid
            cancel_event: Set from another thread to abort the run

        Returns:
            Path to the installed binary

        Raises:
            ProvisionError: Any stage failure, unchanged
        """
        self.state = InstallState.UNCHECKED

        try:
            location = self.resolve_location(requested_version)

            if not force and is_up_to_date(location):
                self.state = InstallState.CACHE_VALID
                logger.info(f"Using existing PocketBase binary (v{location.version})")
                return location.binary_path

            self.state = InstallState.CACHE_STALE
            return self._install(location, cancel_event)

        except BaseException:
            self.state = InstallState.FAILED
            raise

    def _install(
        self, location: ArtifactLocation, cancel_event: Optional[threading.Event]
    ) -> Path:
        logger.info("Downloading PocketBase binary...")
        logger.info(f"Platform: {self.platform}")
        logger.info(f"Version: {location.version}")
        logger.info(f"URL: {location.download_url}")

        try:
            self.install_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Cannot create install root ({e.strerror})", self.install_root
            ) from e

        try:
            self.state = InstallState.DOWNLOADING
            self.downloader.fetch(
                location.download_url, location.archive_path, cancel_event
            )

            if cancel_event is not None and cancel_event.is_set():
                raise DownloadCancelledError("Installation cancelled")

            self.state = InstallState.EXTRACTING
            logger.info("Extracting binary...")
            binary_path = extract_entry(
                location.archive_path,
                self.install_root,
                location.binary_name,
                executable=not self.platform.is_windows,
            )
        finally:
            try:
                remove_file(location.archive_path)
            except FilesystemError as e:
                logger.warning(f"Failed to remove temporary archive: {e}")

        VersionMarker(location.version_marker_path).write(location.version)

        self.state = InstallState.INSTALLED
        logger.info(
            f"PocketBase binary ready: {location.binary_name} (v{location.version})"
        )
        return binary_path


def ensure_binary(
    install_root: Path,
    requested_version: Optional[str] = None,
    config: Optional[ProvisionConfig] = None,
    **kwargs,
) -> Path:
    """
    Install (if needed) and return the PocketBase binary for install_root.

    Args:
        install_root: Directory to install into
        requested_version: Explicit version override
        config: Configuration (loaded from install_root/environment if None)
        **kwargs: Passed to BinaryInstaller (platform, session,
            progress_callback)

    Returns:
        Path to the installed binary
    """
    if config is None:
        config = load_config(install_root=install_root)

    installer = BinaryInstaller(config, install_root, **kwargs)
    return installer.ensure(requested_version)
