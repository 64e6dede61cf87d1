"""
Install command implementation.

Downloads and installs the configured distribution (if needed) and prints
its installation root.
"""

import logging

from wrapperkit.cli.utils import create_installer, load_configuration, safe_print

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    configuration = load_configuration(args)
    installer = create_installer(args, configuration)

    result = installer.ensure_installed(configuration.distribution)

    if result.was_cached:
        logger.debug("Distribution was already installed")

    safe_print(str(result.install_root))
    return 0
