"""
Paths command implementation.

Prints where the configured distribution is (or would be) cached. Nothing is
created or downloaded.
"""

from wrapperkit.cli.utils import create_path_resolver, load_configuration, safe_print
from wrapperkit.core.paths import safe_uri


def run(args) -> int:
    """
    Run the paths command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    configuration = load_configuration(args)
    paths = create_path_resolver(args, configuration).resolve(configuration.distribution)

    installed = paths.marker_file.is_file()

    safe_print(f"Distribution:   {safe_uri(configuration.distribution.source_uri)}")
    safe_print(f"Archive:        {paths.archive_file}")
    safe_print(f"Extraction dir: {paths.extraction_dir}")
    safe_print(f"Installed:      {'yes' if installed else 'no'}")
    return 0
