"""
bindep CLI argument parser.

This module implements the command-line interface for bindep using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from bindep import __version__

logger = logging.getLogger(__name__)


class CLI:
    """bindep command-line interface."""

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
            prog="bindep",
            description="bindep - platform-aware binary dependency manager",
            epilog='Use "bindep COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"bindep {__version__}"
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
            help="Path to registry file (default: $BINDEP_CONFIG, ./dep.yaml, bundled)",
        )
        parser.add_argument(
            "--root",
            type=Path,
            metavar="PATH",
            help="Install root directory (default: $BINDEP_INSTALL_ROOT or ./.dep)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_remove_command(subparsers)
        self._add_list_command(subparsers)
        self._add_status_command(subparsers)
        self._add_upgrade_command(subparsers)
        self._add_check_command(subparsers)
        self._add_path_command(subparsers)
        self._add_clean_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install configured binaries",
            description="Install one binary, or every configured binary that is "
            "missing or out of date",
        )
        parser.add_argument(
            "name", nargs="?", metavar="NAME", help="Binary to install (default: all)"
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Reinstall even if the installed version is current",
        )

    def _add_remove_command(self, subparsers):
        """Add 'remove' subcommand."""
        parser = subparsers.add_parser(
            "remove",
            help="Remove an installed binary",
            description="Remove an installed binary and its metadata",
        )
        parser.add_argument("name", metavar="NAME", help="Binary to remove")

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        subparsers.add_parser(
            "list",
            help="List configured binaries",
            description="List the binaries declared in the registry",
        )

    def _add_status_command(self, subparsers):
        """Add 'status' subcommand."""
        parser = subparsers.add_parser(
            "status",
            help="Show installation status",
            description="Compare configured and installed versions",
        )
        parser.add_argument(
            "name", nargs="?", metavar="NAME", help="Binary to inspect (default: all)"
        )

    def _add_upgrade_command(self, subparsers):
        """Add 'upgrade' subcommand."""
        parser = subparsers.add_parser(
            "upgrade",
            help="Upgrade outdated binaries",
            description="Reinstall binaries whose installed version differs from "
            "the configured one",
        )
        parser.add_argument(
            "name", nargs="?", metavar="NAME", help="Binary to upgrade (default: all)"
        )

    def _add_check_command(self, subparsers):
        """Add 'check' subcommand."""
        parser = subparsers.add_parser(
            "check",
            help="Check for newer upstream releases",
            description="Compare pinned versions with the latest GitHub releases",
        )
        parser.add_argument(
            "name", nargs="?", metavar="NAME", help="Binary to check (default: all)"
        )

    def _add_path_command(self, subparsers):
        """Add 'path' subcommand."""
        parser = subparsers.add_parser(
            "path",
            help="Print the install path of a binary",
            description="Print the install path of a configured binary",
        )
        parser.add_argument("name", metavar="NAME", help="Binary name")

    def _add_clean_command(self, subparsers):
        """Add 'clean' subcommand."""
        parser = subparsers.add_parser(
            "clean",
            help="Delete the install root",
            description="Delete every installed binary, metadata file and lock",
        )
        parser.add_argument(
            "--yes", "-y", action="store_true", help="Do not ask for confirmation"
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

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT

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
        command_map = {
            "install": "bindep.cli.commands.install",
            "remove": "bindep.cli.commands.remove",
            "list": "bindep.cli.commands.list_binaries",
            "status": "bindep.cli.commands.status",
            "upgrade": "bindep.cli.commands.upgrade",
            "check": "bindep.cli.commands.check",
            "path": "bindep.cli.commands.path",
            "clean": "bindep.cli.commands.clean",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
