"""
Init command implementation.

Writes a wrapper configuration file for a project.
"""

import logging

from wrapperkit.cli.utils import get_config_file, safe_print
from wrapperkit.core.exceptions import ConfigurationError
from wrapperkit.core.filesystem import atomic_write
from wrapperkit.core.verification import is_valid_hash_format
from wrapperkit.wrapper.configuration import render_wrapper_configuration

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the init command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 if configuration already exists)
    """
    config_file = get_config_file(args)

    if config_file.exists() and not args.force:
        logger.error(
            f"Wrapper configuration already exists: {config_file}. "
            "Use --force to overwrite."
        )
        return 1

    if args.sha256 and not is_valid_hash_format(args.sha256.strip().lower(), "sha256"):
        raise ConfigurationError(f"Not a valid SHA-256 checksum: {args.sha256}")

    content = render_wrapper_configuration(args.distribution_url, args.sha256)
    atomic_write(config_file, content)

    logger.info(f"Wrote wrapper configuration: {config_file}")
    safe_print(str(config_file))
    return 0
