"""
Shared utilities for CLI commands.
"""

import logging
import sys
from pathlib import Path

from pocketbase_bin.config import load_config
from pocketbase_bin.core.download import DownloadProgress, format_progress
from pocketbase_bin.installer import BinaryInstaller

logger = logging.getLogger(__name__)


def safe_print(message: str, file=None, end: str = "\n"):
    """
    Print message with safe encoding handling for Windows console.

    Falls back to ASCII-safe characters if Unicode emojis can't be encoded.

    Args:
        message: Message to print
        file: Output file (default: stdout)
        end: Line terminator
    """
    try:
        print(message, file=file, end=end)
    except UnicodeEncodeError:
        safe_message = (
            message.replace("⚠️", "WARNING:")
            .replace("✅", "[OK]")
            .replace("❌", "[ERROR]")
            .replace("🔄", "[UPDATE]")
        )
        print(safe_message, file=file, end=end)


class ProgressPrinter:
    """Renders download progress on a single terminal line."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stderr
        self.active = False

    def __call__(self, progress: DownloadProgress) -> None:
        self.stream.write(f"\rDownloading... {format_progress(progress)}")
        self.stream.flush()
        self.active = True

    def finish(self) -> None:
        """Terminate the progress line, if one was started."""
        if self.active:
            self.stream.write("\n")
            self.stream.flush()
            self.active = False


def get_install_root(args) -> Path:
    """Install root from parsed args (defaults to the current directory)."""
    root = getattr(args, "install_root", None)
    return Path(root) if root is not None else Path.cwd()


def build_installer(args, progress_callback=None) -> BinaryInstaller:
    """
    Create a BinaryInstaller from parsed CLI arguments.

    Args:
        args: Parsed arguments with config and install_root
        progress_callback: Optional download progress callback

    Raises:
        ConfigError: If the configuration is invalid
        UnsupportedPlatformError: If the host is not supported
    """
    install_root = get_install_root(args)
    config = load_config(
        config_file=getattr(args, "config", None), install_root=install_root
    )
    logger.debug(f"Install root: {install_root}")
    return BinaryInstaller(config, install_root, progress_callback=progress_callback)
