"""
pocketbase-bin - provision a versioned PocketBase binary.

Resolves which release to use, reuses a matching local copy when one exists,
and otherwise downloads and installs it from GitHub releases.
"""

__version__ = "0.1.0"

from pocketbase_bin.installer import BinaryInstaller, InstallState, ensure_binary

__all__ = ["BinaryInstaller", "InstallState", "ensure_binary", "__version__"]
