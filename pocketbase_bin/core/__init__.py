"""
Core functionality for pocketbase-bin.

This package contains the building blocks the installer composes.
"""

from .platform import (
    PlatformTriple,
    resolve_platform,
    detect_platform,
    clear_platform_cache,
)

from .versions import VersionResolver, normalize_tag

from .artifact import ArtifactLocation, build_artifact_location

from .state import VersionMarker, is_up_to_date

from .download import Downloader, DownloadProgress, format_progress

from .filesystem import atomic_write, extract_entry

from .exceptions import (
    ProvisionError,
    ConfigError,
    UnsupportedPlatformError,
    VersionResolutionError,
    DownloadError,
    NetworkError,
    HttpStatusError,
    DownloadTimeoutError,
    TooManyRedirectsError,
    DownloadCancelledError,
    FilesystemError,
    ArchiveExtractionError,
    EntryNotFoundError,
    AmbiguousEntryError,
)

__all__ = [
    "PlatformTriple",
    "resolve_platform",
    "detect_platform",
    "clear_platform_cache",
    "VersionResolver",
    "normalize_tag",
    "ArtifactLocation",
    "build_artifact_location",
    "VersionMarker",
    "is_up_to_date",
    "Downloader",
    "DownloadProgress",
    "format_progress",
    "atomic_write",
    "extract_entry",
    "ProvisionError",
    "ConfigError",
    "UnsupportedPlatformError",
    "VersionResolutionError",
    "DownloadError",
    "NetworkError",
    "HttpStatusError",
    "DownloadTimeoutError",
    "TooManyRedirectsError",
    "DownloadCancelledError",
    "FilesystemError",
    "ArchiveExtractionError",
    "EntryNotFoundError",
    "AmbiguousEntryError",
]
