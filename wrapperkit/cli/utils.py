"""
Shared utilities for CLI commands.

Provides the configuration and installer setup every command needs, so all
commands resolve directories and overrides the same way.
"""

import logging
from pathlib import Path

from wrapperkit.core.directory import get_wrapper_config_file, get_wrapper_user_home
from wrapperkit.core.download import Downloader
from wrapperkit.core.paths import PathResolver
from wrapperkit.wrapper.configuration import (
    WrapperConfiguration,
    load_wrapper_configuration,
    parse_property_overrides,
)
from wrapperkit.wrapper.installer import Installer

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Management
# ============================================================================


def get_project_root(args) -> Path:
    """Project root from arguments (default: current directory)."""
    project_root = getattr(args, "project_root", None)
    return Path(project_root).resolve() if project_root else Path.cwd()


def get_config_file(args) -> Path:
    """Wrapper configuration file from --config or the project default."""
    config = getattr(args, "config", None)
    if config:
        return Path(config)
    return get_wrapper_config_file(get_project_root(args))


def load_configuration(args) -> WrapperConfiguration:
    """
    Load wrapper configuration for a command.

    Merges the per-user ``wrapperkit.yaml`` over the project configuration and
    applies ``-D key=value`` overrides on top. ``--user-home`` wins over a
    ``wrapper_user_home`` property.

    Raises:
        ConfigurationError: If the configuration is missing or invalid
    """
    overrides = parse_property_overrides(getattr(args, "properties", None))
    config_file = get_config_file(args)
    return load_wrapper_configuration(
        config_file,
        overrides=overrides,
        user_home=getattr(args, "user_home", None),
    )


def create_path_resolver(args, configuration: WrapperConfiguration) -> PathResolver:
    """Path resolver for the configured user home and the selected project root."""
    user_home = configuration.user_home or get_wrapper_user_home(
        getattr(args, "user_home", None)
    )
    return PathResolver(user_home, get_project_root(args))


def create_installer(args, configuration: WrapperConfiguration) -> Installer:
    """Installer wired with the configuration's network and install settings."""
    return Installer(
        create_path_resolver(args, configuration),
        Downloader(configuration.network),
        configuration.install,
    )


# ============================================================================
# Output Helpers
# ============================================================================


def safe_print(message: str, file=None):
    """
    Print message with safe encoding handling for Windows console.

    Falls back to replacing characters the console can't encode.

    Args:
        message: Message to print
        file: Output file (default: stdout)
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        print(message.encode("ascii", errors="replace").decode("ascii"), file=file)
