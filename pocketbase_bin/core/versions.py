"""
Version resolution for the PocketBase binary.

The version to install is chosen from, in order:

1. an explicit request (e.g. ``--pb-version``)
2. the environment default (``POCKETBASE_VERSION``)
3. the latest release tag published on GitHub
4. a pinned fallback version

A failed remote lookup never aborts provisioning; the pinned version is used
instead.
"""

import logging
from typing import Optional

import requests

from pocketbase_bin.core.exceptions import VersionResolutionError

logger = logging.getLogger(__name__)


def normalize_tag(tag: str) -> str:
    """
    Convert a release tag into a version string.

    Example:
        >>> normalize_tag("v0.22.0")
        '0.22.0'
    """
    tag = tag.strip()
    return tag[1:] if tag.startswith("v") else tag


class VersionResolver:
    """
    Resolve the concrete release version to provision.

    Args:
        latest_release_url: Releases API endpoint returning JSON with 'tag_name'
        fallback_version: Pinned version used when the lookup fails
        env_version: Environment-provided default, if any
        timeout: Lookup timeout in seconds
        session: HTTP session (a fresh one is created if None)
    """

    def __init__(
        self,
        latest_release_url: str,
        fallback_version: str,
        env_version: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        fallback_version = (fallback_version or "").strip()
        if not fallback_version:
            raise ValueError("Fallback version cannot be empty")

        self.latest_release_url = latest_release_url
        self.fallback_version = fallback_version
        self.env_version = (env_version or "").strip() or None
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None):
        """Create a resolver from a ProvisionConfig."""
        return cls(
            latest_release_url=config.latest_release_url,
            fallback_version=config.fallback_version,
            env_version=config.env_version,
            timeout=config.version_lookup_timeout,
            session=session,
        )

    def resolve(self, requested: Optional[str] = None) -> str:
        """
        Resolve the version to install.

        Args:
            requested: Explicit version request; returned verbatim (minus
                surrounding whitespace) when given

        Returns:
            Non-empty version string without a leading 'v'
        """
        requested = (requested or "").strip()
        if requested:
            logger.debug(f"Using requested version {requested}")
            return requested

        if self.env_version:
            logger.debug(f"Using environment default version {self.env_version}")
            return self.env_version

        try:
            version = self.fetch_latest()
        except VersionResolutionError as e:
            logger.warning(f"{e}, using default version {self.fallback_version}")
            return self.fallback_version

        logger.info(f"Latest PocketBase version: {version}")
        return version

    def fetch_latest(self) -> str:
        """
        Query the releases API for the latest tag.

        Returns:
            Latest version with the leading 'v' stripped

        Raises:
            VersionResolutionError: On network failure, timeout, bad status,
                or a response without a usable tag
        """
        try:
            response = self.session.get(
                self.latest_release_url,
                timeout=self.timeout,
                headers={"Accept": "application/vnd.github+json"},
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise VersionResolutionError("GitHub API timeout") from e
        except requests.RequestException as e:
            raise VersionResolutionError(f"Failed to fetch latest release: {e}") from e
        except ValueError as e:
            raise VersionResolutionError(
                "Failed to parse GitHub API response"
            ) from e

        tag = data.get("tag_name") if isinstance(data, dict) else None
        if not isinstance(tag, str) or not normalize_tag(tag):
            raise VersionResolutionError("GitHub API response has no tag_name")

        return normalize_tag(tag)
