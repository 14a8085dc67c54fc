"""
Platform detection for pocketbase-bin.

Maps the host operating system and CPU architecture onto the naming used by
PocketBase release assets (e.g. ``pocketbase_linux_amd64.zip``).

Usage:
    from pocketbase_bin.core.platform import detect_platform

    triple = detect_platform()
    print(triple.asset_suffix)      # linux_amd64
    print(triple.binary_name())     # pocketbase
"""

import functools
import platform
from dataclasses import dataclass

from pocketbase_bin.core.exceptions import UnsupportedPlatformError

# platform.system() (lowercased) -> release platform name
_OS_MAP = {
    "windows": "windows",
    "darwin": "darwin",
    "linux": "linux",
}

# platform.machine() (lowercased) -> release architecture name
_ARCH_MAP = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "arm64": "arm64",
    "aarch64": "arm64",
}

SUPPORTED_OS = frozenset(_OS_MAP.values())
SUPPORTED_ARCH = frozenset(_ARCH_MAP.values())


@dataclass(frozen=True)
class PlatformTriple:
    """
    Canonical description of the build to fetch.

    Attributes:
        platform_name: 'windows', 'darwin' or 'linux'
        arch_name: 'amd64' or 'arm64'
        file_extension: '.exe' on Windows, '' elsewhere
    """

    platform_name: str
    arch_name: str
    file_extension: str

    @property
    def asset_suffix(self) -> str:
        """Suffix used in release asset names, e.g. 'darwin_arm64'."""
        return f"{self.platform_name}_{self.arch_name}"

    @property
    def is_windows(self) -> bool:
        return self.platform_name == "windows"

    def binary_name(self, prefix: str = "pocketbase") -> str:
        """
        Get the on-disk executable name for this platform.

        Example:
            >>> PlatformTriple("windows", "amd64", ".exe").binary_name()
            'pocketbase.exe'
        """
        return f"{prefix}{self.file_extension}"

    def __str__(self) -> str:
        return f"{self.platform_name}-{self.arch_name}"


def resolve_platform(system: str, machine: str) -> PlatformTriple:
    """
    Map raw OS/CPU identifiers onto a PlatformTriple.

    Args:
        system: Value in the style of platform.system() ('Linux', 'Darwin', ...)
        machine: Value in the style of platform.machine() ('x86_64', 'arm64', ...)

    Returns:
        PlatformTriple for the identifiers

    Raises:
        UnsupportedPlatformError: If either identifier has no release build
    """
    platform_name = _OS_MAP.get((system or "").lower())
    if platform_name is None:
        raise UnsupportedPlatformError("platform", system, SUPPORTED_OS)

    arch_name = _ARCH_MAP.get((machine or "").lower())
    if arch_name is None:
        raise UnsupportedPlatformError("architecture", machine, SUPPORTED_ARCH)

    extension = ".exe" if platform_name == "windows" else ""
    return PlatformTriple(platform_name, arch_name, extension)


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformTriple:
    """
    Detect the triple for the running host.

    This function is cached - it only runs detection once per process.

    Raises:
        UnsupportedPlatformError: If the host is not supported
    """
    return resolve_platform(platform.system(), platform.machine())


def clear_platform_cache():
    """
    Clear the platform detection cache.

    Forces the next call to detect_platform() to re-detect.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformTriple",
    "SUPPORTED_OS",
    "SUPPORTED_ARCH",
    "resolve_platform",
    "detect_platform",
    "clear_platform_cache",
]
