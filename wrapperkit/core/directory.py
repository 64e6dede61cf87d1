"""
Base directory resolution for WrapperKit.

Distributions are cached below one of two base directories:

    Wrapper user home (~/.wrapperkit/ unless overridden):
        - wrapperkit.yaml : Per-user wrapper properties (credentials, proxies)
        - wrapper/dists/  : Downloaded archives and extracted distributions

    Project directory (<project-root>/):
        - wrapper/wrapper.yaml : Wrapper configuration

Which base a distribution uses is chosen per distribution through ``DistributionBase``.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from wrapperkit.core.exceptions import ConfigurationError

USER_HOME_ENV_VAR = "WRAPPERKIT_USER_HOME"
DEFAULT_USER_HOME_NAME = ".wrapperkit"
USER_CONFIG_FILE_NAME = "wrapperkit.yaml"


class DistributionBase(Enum):
    """Base directory kinds a cache path can be anchored to."""

    USER_HOME = "WRAPPER_USER_HOME"
    PROJECT = "PROJECT"

    @classmethod
    def parse(cls, value: Union[str, "DistributionBase"]) -> "DistributionBase":
        """
        Parse a base kind from configuration.

        Accepts the configuration value (``WRAPPER_USER_HOME``, ``PROJECT``)
        as well as the member name (``USER_HOME``).

        Raises:
            ConfigurationError: If the value names no known base
        """
        if isinstance(value, cls):
            return value

        text = str(value).strip()
        for member in cls:
            if text in (member.value, member.name):
                return member

        raise ConfigurationError(
            f"Base: {value} is unknown. "
            f"Expected one of: {', '.join(m.value for m in cls)}"
        )


def get_wrapper_user_home(override: Optional[Union[str, Path]] = None) -> Path:
    """
    Get the wrapper user home directory.

    Resolution order:
    - explicit override (e.g. ``--user-home``)
    - ``WRAPPERKIT_USER_HOME`` environment variable
    - ``~/.wrapperkit``

    Args:
        override: Optional explicit directory

    Returns:
        Path to the wrapper user home

    Example:
        >>> get_wrapper_user_home()
        PosixPath('/home/user/.wrapperkit')
    """
    if override:
        return Path(override).expanduser()

    env_home = os.environ.get(USER_HOME_ENV_VAR)
    if env_home:
        return Path(env_home).expanduser()

    return Path.home() / DEFAULT_USER_HOME_NAME


def get_wrapper_config_file(project_root: Path) -> Path:
    """Default location of the wrapper configuration inside a project."""
    return project_root / "wrapper" / "wrapper.yaml"


def get_user_config_file(user_home: Path) -> Path:
    """Per-user wrapper properties inside the wrapper user home."""
    return Path(user_home) / USER_CONFIG_FILE_NAME
