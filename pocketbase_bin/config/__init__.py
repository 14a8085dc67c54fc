"""
Configuration loading for pocketbase-bin.
"""

from .settings import (
    CONFIG_FILENAME,
    DEFAULT_VERSION,
    VERSION_ENV,
    ProvisionConfig,
    load_config,
    load_yaml_config,
)

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_VERSION",
    "VERSION_ENV",
    "ProvisionConfig",
    "load_config",
    "load_yaml_config",
]
