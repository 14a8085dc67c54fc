"""
Status command implementation.

Shows the detected platform, the installed version and whether it matches the
version that would be installed.
"""

import logging

from pocketbase_bin.cli.utils import build_installer, safe_print
from pocketbase_bin.core.artifact import build_artifact_location
from pocketbase_bin.core.state import is_up_to_date

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the status command.

    Args:
        args: Parsed command-line arguments with:
            - pb_version: Explicit version override
            - offline: Use the pinned fallback instead of querying GitHub

    Returns:
        Exit code (0 if up to date, 1 otherwise)
    """
    installer = build_installer(args)

    if args.offline and not args.pb_version and not installer.resolver.env_version:
        location = build_artifact_location(
            installer.config,
            installer.platform,
            installer.resolver.fallback_version,
            installer.install_root,
        )
    else:
        location = installer.resolve_location(args.pb_version)

    current = installer.installed_version()
    up_to_date = is_up_to_date(location)

    safe_print(f"Platform:          {installer.platform}")
    safe_print(f"Install root:      {installer.install_root}")
    safe_print(f"Binary:            {location.binary_path}")
    safe_print(f"Installed version: {current or '(none)'}")
    safe_print(f"Target version:    {location.version}")
    safe_print(f"Download URL:      {location.download_url}")

    if up_to_date:
        safe_print("✅ Up to date")
        return 0

    safe_print("🔄 Install needed (run 'pocketbase-bin install')")
    return 1
