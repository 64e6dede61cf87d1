"""
Centralized exception hierarchy for WrapperKit.

Every failure the installer can surface is one of the classes below. Each
class carries a ``phase`` label naming the part of the install that failed,
which the CLI uses when reporting errors.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class WrapperKitError(Exception):
    """Base exception for all WrapperKit errors."""

    phase = "wrapper"


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(WrapperKitError):
    """Invalid or incomplete wrapper configuration."""

    phase = "configuration"


class InsecureAuthenticationError(ConfigurationError):
    """Raised when Basic credentials would be sent over plain HTTP and that is not allowed."""

    pass


# ============================================================================
# Locking Exceptions
# ============================================================================


class LockTimeoutError(WrapperKitError):
    """Raised when exclusive access to a resource is not granted in time."""

    phase = "lock"

    def __init__(self, resource, timeout: float):
        self.resource = resource
        self.timeout = timeout
        super().__init__(
            f"Timeout of {timeout}s reached waiting for exclusive access to file: {resource}"
        )


# ============================================================================
# Download Exceptions
# ============================================================================


class NetworkError(WrapperKitError):
    """Raised when a distribution cannot be downloaded."""

    phase = "download"


class DownloadInterruptedError(NetworkError):
    """Raised when a download is cancelled while in progress."""

    pass


# ============================================================================
# Verification Exceptions
# ============================================================================


class IntegrityError(WrapperKitError):
    """Raised when a downloaded archive does not match its expected checksum."""

    phase = "checksum verification"


class StructuralError(WrapperKitError):
    """Raised when an extracted distribution does not have the expected layout."""

    phase = "structure verification"


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class DistributionIOError(WrapperKitError):
    """Filesystem failure while preparing a distribution."""

    phase = "filesystem"


class ArchiveExtractionError(DistributionIOError):
    """Failed to extract an archive."""

    phase = "extraction"


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Launch Exceptions
# ============================================================================


class LaunchError(WrapperKitError):
    """Raised when the installed runtime cannot be started."""

    phase = "launch"
