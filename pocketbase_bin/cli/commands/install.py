"""
Install command implementation.

Ensures the requested PocketBase binary is present in the install root.
"""

import logging
import sys

from pocketbase_bin.cli.utils import ProgressPrinter, build_installer, safe_print
from pocketbase_bin.core.exceptions import ProvisionError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with:
            - pb_version: Explicit version override
            - force: Reinstall even if up to date

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    progress = ProgressPrinter()
    installer = build_installer(args, progress_callback=progress)

    try:
        binary_path = installer.ensure(
            requested_version=args.pb_version, force=args.force
        )
    except ProvisionError as e:
        progress.finish()
        safe_print(f"❌ Failed to download PocketBase binary: {e}", file=sys.stderr)
        return 1

    progress.finish()

    safe_print(f"✅ PocketBase binary ready: {binary_path}")
    return 0
