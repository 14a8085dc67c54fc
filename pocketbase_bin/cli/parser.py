"""
pocketbase-bin CLI argument parser.

This module implements the command-line interface using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pocketbase_bin import __version__
from pocketbase_bin.cli.utils import safe_print
from pocketbase_bin.config import VERSION_ENV
from pocketbase_bin.core.exceptions import ProvisionError

logger = logging.getLogger(__name__)

# Command name -> module providing run(args)
COMMAND_MAP = {
    "install": "pocketbase_bin.cli.commands.install",
    "path": "pocketbase_bin.cli.commands.path",
    "status": "pocketbase_bin.cli.commands.status",
}


class CLI:
    """pocketbase-bin command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="pocketbase-bin",
            description="Download and manage the PocketBase binary",
            epilog=(
                f"Environment variables:\n"
                f"  {VERSION_ENV}  Default PocketBase version to use\n\n"
                'Use "pocketbase-bin COMMAND --help" for command-specific help'
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"pocketbase-bin {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help=(
                "Path to configuration file "
                "(default: <install-root>/pocketbase-bin.yaml)"
            ),
        )
        parser.add_argument(
            "--install-root",
            type=Path,
            metavar="PATH",
            default=None,
            help="Directory holding the binary (default: current directory)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_path_command(subparsers)
        self._add_status_command(subparsers)

        return parser

    @staticmethod
    def _add_version_option(parser):
        parser.add_argument(
            "--pb-version",
            metavar="VERSION",
            help=f"Use specific PocketBase version (overrides {VERSION_ENV})",
        )

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Download the PocketBase binary if missing or outdated",
            description="Ensure the requested PocketBase binary is installed",
        )
        self._add_version_option(parser)
        parser.add_argument(
            "--force",
            action="store_true",
            help="Reinstall even if the installed version matches",
        )

    def _add_path_command(self, subparsers):
        """Add 'path' subcommand."""
        parser = subparsers.add_parser(
            "path",
            help="Print the path of the (installed) binary",
            description="Ensure the binary is installed and print only its path",
        )
        self._add_version_option(parser)

    def _add_status_command(self, subparsers):
        """Add 'status' subcommand."""
        parser = subparsers.add_parser(
            "status",
            help="Show platform and installed version",
            description="Show platform, installed version and cache status",
        )
        self._add_version_option(parser)
        parser.add_argument(
            "--offline",
            action="store_true",
            help="Skip the latest-release lookup",
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except ProvisionError as e:
            safe_print(f"❌ Error: {e}", file=sys.stderr)
            if parsed_args.verbose:
                logger.debug("Failure details", exc_info=True)
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        module_name = COMMAND_MAP.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main(args: Optional[List[str]] = None):
    """Console script entry point."""
    sys.exit(CLI().run(args))
