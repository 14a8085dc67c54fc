"""
Path command implementation.

Prints only the binary path so it can be used from scripts:

    "$(pocketbase-bin path)" serve
"""

from pocketbase_bin.cli.utils import build_installer


def run(args) -> int:
    """
    Run the path command.

    Args:
        args: Parsed command-line arguments with pb_version

    Returns:
        Exit code (0 for success)
    """
    installer = build_installer(args)
    print(installer.ensure(requested_version=args.pb_version))
    return 0
