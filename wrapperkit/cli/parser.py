"""
WrapperKit CLI argument parser.

This module implements the command-line interface for WrapperKit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from wrapperkit import __version__
from wrapperkit.core.exceptions import WrapperKitError

logger = logging.getLogger(__name__)


class CLI:
    """WrapperKit command-line interface."""

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
            prog="wrapperkit",
            description="WrapperKit - Download, verify and run a pinned tool distribution",
            epilog='Use "wrapperkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"WrapperKit {__version__}"
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
            help="Path to wrapper configuration (default: ./wrapper/wrapper.yaml)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            help="Project root directory (default: current directory)",
        )
        parser.add_argument(
            "--user-home",
            type=Path,
            metavar="PATH",
            help="Wrapper user home (default: $WRAPPERKIT_USER_HOME or ~/.wrapperkit)",
        )
        parser.add_argument(
            "-D",
            "--property",
            action="append",
            dest="properties",
            default=[],
            metavar="KEY=VALUE",
            help="Override a wrapper configuration property (repeatable)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_run_command(subparsers)
        self._add_paths_command(subparsers)
        self._add_init_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        subparsers.add_parser(
            "install",
            help="Install the configured distribution",
            description="Download, verify and extract the configured distribution "
            "if it is not installed yet, then print its installation root",
        )

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Run the configured distribution",
            description="Install the configured distribution if needed and run it "
            "with the remaining arguments. Use '--' before arguments that start "
            "with '-' (e.g. wrapperkit run -- -version)",
        )
        parser.add_argument(
            "runtime_args",
            nargs=argparse.REMAINDER,
            metavar="ARGS",
            help="Arguments passed to the distribution",
        )

    def _add_paths_command(self, subparsers):
        """Add 'paths' subcommand."""
        subparsers.add_parser(
            "paths",
            help="Show cache locations",
            description="Show where the configured distribution is cached",
        )

    def _add_init_command(self, subparsers):
        """Add 'init' subcommand."""
        parser = subparsers.add_parser(
            "init",
            help="Create wrapper configuration",
            description="Write a wrapper configuration file for this project",
        )
        parser.add_argument(
            "--distribution-url",
            required=True,
            metavar="URL",
            help="Where to download the distribution archive from",
        )
        parser.add_argument(
            "--sha256",
            metavar="HASH",
            help="Expected SHA-256 checksum of the archive",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite an existing configuration file",
        )

    def parse_args(self, args: Optional[List[str]] = None):
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
        except WrapperKitError as e:
            logger.error(f"Error ({e.phase}): {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
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
        command_map = {
            "install": "wrapperkit.cli.commands.install",
            "run": "wrapperkit.cli.commands.run",
            "paths": "wrapperkit.cli.commands.paths",
            "init": "wrapperkit.cli.commands.init",
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
