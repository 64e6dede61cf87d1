"""
Run command implementation.

Ensures the distribution is installed, then starts it with the remaining
command-line arguments and exits with its exit code.
"""

import logging

from wrapperkit.cli.utils import create_installer, load_configuration
from wrapperkit.wrapper.launcher import launch

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the run command.

    Args:
        args: Parsed command-line arguments (``runtime_args`` are passed through)

    Returns:
        Exit code of the launched runtime
    """
    configuration = load_configuration(args)
    installer = create_installer(args, configuration)

    result = installer.ensure_installed(configuration.distribution)

    runtime_args = list(getattr(args, "runtime_args", None) or [])
    if runtime_args and runtime_args[0] == "--":
        runtime_args = runtime_args[1:]

    return launch(result.install_root, runtime_args, configuration.launch)
