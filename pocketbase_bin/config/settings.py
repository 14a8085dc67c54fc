"""YAML + environment configuration for pocketbase-bin.

Values are layered: built-in defaults, then an optional ``pocketbase-bin.yaml``
file, then environment variables.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from pocketbase_bin.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "pocketbase-bin.yaml"

# Environment variable holding the default version to install
VERSION_ENV = "POCKETBASE_VERSION"

# Pinned release used when the latest release cannot be determined
DEFAULT_VERSION = "0.0.1-impersonate-cli"


@dataclass(frozen=True)
class ProvisionConfig:
    """Settings for locating, fetching and installing the binary."""

    github_owner: str = "zhigang1992"
    github_repo: str = "pocketbase"
    binary_prefix: str = "pocketbase"
    fallback_version: str = DEFAULT_VERSION
    env_version: Optional[str] = None
    api_url: str = "https://api.github.com"
    download_base_url: str = "https://github.com"
    version_lookup_timeout: float = 10.0
    download_timeout: float = 30.0
    max_redirects: int = 5
    marker_filename: str = ".pocketbase-version"
    user_agent: str = "pocketbase-bin-python"

    @property
    def latest_release_url(self) -> str:
        """Releases API endpoint describing the latest published release."""
        return (
            f"{self.api_url.rstrip('/')}/repos/"
            f"{self.github_owner}/{self.github_repo}/releases/latest"
        )

    def asset_url(self, version: str, asset_suffix: str) -> str:
        """Download URL of the release archive for a version and platform."""
        return (
            f"{self.download_base_url.rstrip('/')}/{self.github_owner}/"
            f"{self.github_repo}/releases/download/{version}/"
            f"{self.binary_prefix}_{asset_suffix}.zip"
        )

    def validate(self) -> "ProvisionConfig":
        """
        Check value ranges.

        Returns:
            self, for chaining

        Raises:
            ConfigError: If any value is out of range
        """
        for name in (
            "github_owner",
            "github_repo",
            "binary_prefix",
            "fallback_version",
            "api_url",
            "download_base_url",
            "marker_filename",
            "user_agent",
        ):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"'{name}' must be a non-empty string")

        for name in ("version_lookup_timeout", "download_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"'{name}' must be a number")
            if value <= 0:
                raise ConfigError(f"'{name}' must be positive, got {value}")

        if isinstance(self.max_redirects, bool) or not isinstance(
            self.max_redirects, int
        ):
            raise ConfigError("'max_redirects' must be an integer")
        if self.max_redirects < 0:
            raise ConfigError(
                f"'max_redirects' must not be negative, got {self.max_redirects}"
            )

        if self.env_version is not None and not isinstance(self.env_version, str):
            raise ConfigError("'env_version' must be a string")

        return self


def _field_names() -> set:
    return {f.name for f in fields(ProvisionConfig)}


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        ConfigError: If the file is required but missing, or not valid YAML
    """
    if not config_file.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {config_file} must be a mapping")

    unknown = set(data) - _field_names()
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys in {config_file}: "
            f"{', '.join(sorted(unknown))}"
        )

    # YAML reads an unquoted "0.22" as a float
    version = data.get("fallback_version")
    if isinstance(version, (int, float)) and not isinstance(version, bool):
        data["fallback_version"] = str(version)

    return data


def load_config(
    config_file: Optional[Path] = None,
    install_root: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ProvisionConfig:
    """
    Build the effective configuration.

    Args:
        config_file: Explicit YAML file (must exist when given)
        install_root: Directory searched for pocketbase-bin.yaml when no
            explicit file is given
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated ProvisionConfig

    Raises:
        ConfigError: If the configuration is invalid
    """
    environ = os.environ if environ is None else environ

    if config_file is not None:
        values = load_yaml_config(Path(config_file), required=True)
    elif install_root is not None:
        values = load_yaml_config(Path(install_root) / CONFIG_FILENAME)
    else:
        values = {}

    config = replace(ProvisionConfig(), **values)

    env_version = environ.get(VERSION_ENV, "").strip()
    if env_version:
        logger.debug(f"{VERSION_ENV}={env_version}")
        config = replace(config, env_version=env_version)

    return config.validate()
