"""
Core functionality for WrapperKit.

This package contains the building blocks of the installer: cache path
derivation, cross-process locking, downloading, hash verification and archive
extraction.
"""

from .directory import (
    DistributionBase,
    get_wrapper_user_home,
    get_user_config_file,
    get_wrapper_config_file,
)

from .paths import (
    CachePaths,
    DistributionSpec,
    PathResolver,
    safe_uri,
)

from .locking import (
    with_lock,
    exclusive_access,
)

from .download import (
    Downloader,
    NetworkSettings,
)

from .verification import (
    compute_file_hash,
    verify_file_hash,
)

from .filesystem import (
    extract_archive,
)

from .exceptions import (
    WrapperKitError,
    ConfigurationError,
    InsecureAuthenticationError,
    LockTimeoutError,
    NetworkError,
    DownloadInterruptedError,
    IntegrityError,
    StructuralError,
    DistributionIOError,
    ArchiveExtractionError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
    LaunchError,
)

__all__ = [
    "DistributionBase",
    "get_wrapper_user_home",
    "get_user_config_file",
    "get_wrapper_config_file",
    "CachePaths",
    "DistributionSpec",
    "PathResolver",
    "safe_uri",
    "with_lock",
    "exclusive_access",
    "Downloader",
    "NetworkSettings",
    "compute_file_hash",
    "verify_file_hash",
    "extract_archive",
    "WrapperKitError",
    "ConfigurationError",
    "InsecureAuthenticationError",
    "LockTimeoutError",
    "NetworkError",
    "DownloadInterruptedError",
    "IntegrityError",
    "StructuralError",
    "DistributionIOError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "LaunchError",
]
