"""
Distribution wrapper: configuration, installation and launch of the runtime.
"""

from .installer import (
    Installer,
    InstallResult,
    InstallSettings,
    ensure_installed,
)

from .launcher import (
    LaunchSettings,
    launch,
)

from .configuration import (
    WrapperConfiguration,
    load_wrapper_configuration,
    configuration_from_properties,
)

__all__ = [
    "Installer",
    "InstallResult",
    "InstallSettings",
    "ensure_installed",
    "LaunchSettings",
    "launch",
    "WrapperConfiguration",
    "load_wrapper_configuration",
    "configuration_from_properties",
]
