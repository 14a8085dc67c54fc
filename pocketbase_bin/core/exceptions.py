"""
Centralized exception hierarchy for pocketbase-bin.

Every error raised while provisioning the PocketBase binary derives from
ProvisionError so callers can handle the whole family in one place.
"""

from pathlib import Path
from typing import Optional, Union


# ============================================================================
# Base Exceptions
# ============================================================================


class ProvisionError(Exception):
    """Base exception for all pocketbase-bin errors."""

    pass


class ConfigError(ProvisionError):
    """Configuration parsing or validation error."""

    pass


# ============================================================================
# Platform / Version Exceptions
# ============================================================================


class UnsupportedPlatformError(ProvisionError):
    """Raised when the host OS or CPU has no published release build."""

    def __init__(self, kind: str, value: str, supported):
        self.kind = kind
        self.value = value
        self.supported = tuple(sorted(supported))
        super().__init__(
            f"Unsupported {kind}: {value}. Supported: {', '.join(self.supported)}"
        )


class VersionResolutionError(ProvisionError):
    """Remote lookup of the latest release failed (always recovered from)."""

    pass


# ============================================================================
# Download Exceptions
# ============================================================================


class DownloadError(ProvisionError):
    """Base exception for download failures."""

    pass


class NetworkError(DownloadError):
    """Connection-level failure (DNS, refused, reset, truncated body)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class HttpStatusError(DownloadError):
    """Server answered with a status that is neither 200 nor a redirect."""

    def __init__(self, status_code: int, reason: str = "", url: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.url = url
        super().__init__(f"Download failed: {status_code} - {reason}".rstrip(" -"))


class DownloadTimeoutError(DownloadError):
    """Request did not complete within its timeout."""

    pass


class TooManyRedirectsError(DownloadError):
    """Redirect chain exceeded the configured hop limit."""

    def __init__(self, url: str, max_redirects: int):
        self.url = url
        self.max_redirects = max_redirects
        super().__init__(f"Exceeded {max_redirects} redirects while fetching {url}")


class DownloadCancelledError(DownloadError):
    """Transfer was aborted by the caller."""

    pass


# ============================================================================
# Archive / Filesystem Exceptions
# ============================================================================


class FilesystemError(ProvisionError):
    """Filesystem operation failed; carries the offending path."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        if path is not None:
            message = f"{message}: {path}"
        super().__init__(message)


class ArchiveExtractionError(ProvisionError):
    """Failed to open or extract an archive."""

    pass


class EntryNotFoundError(ArchiveExtractionError):
    """Archive does not contain the expected binary entry."""

    def __init__(self, entry_name: str, archive_path: Union[str, Path]):
        self.entry_name = entry_name
        self.archive_path = Path(archive_path)
        super().__init__(f"Binary not found in zip: {entry_name}")


class AmbiguousEntryError(ArchiveExtractionError):
    """Archive contains more than one candidate for the expected entry."""

    def __init__(self, entry_name: str, candidates):
        self.entry_name = entry_name
        self.candidates = list(candidates)
        super().__init__(
            f"Multiple entries match {entry_name}: {', '.join(self.candidates)}"
        )
