"""
Distribution installation.

This module turns a ``DistributionSpec`` into a ready-to-use installation
directory, coordinating path resolution, locking, download, checksum
verification and extraction.

The whole install runs inside one exclusive lock keyed by the archive path:

1. Cache check: extraction dir + marker present and structurally valid ->
   return immediately, no network access
2. Download the archive unless it is already cached
3. Remove directories left over from earlier attempts
4. Verify the archive checksum (if one is configured)
5. Extract the archive
6. Verify the extracted structure
7. Make the runtime's entry point executable (best effort)
8. Write the marker file
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from wrapperkit.core.directory import get_wrapper_user_home
from wrapperkit.core.download import Downloader, NetworkSettings
from wrapperkit.core.exceptions import (
    ArchiveExtractionError,
    ConfigurationError,
    DistributionIOError,
    IntegrityError,
    StructuralError,
)
from wrapperkit.core.filesystem import (
    IS_WINDOWS,
    extract_archive,
    list_directories,
    list_directory_links,
    make_executable,
    safe_rmtree,
)
from wrapperkit.core.locking import DEFAULT_LOCK_TIMEOUT, DEFAULT_POLL_INTERVAL, with_lock
from wrapperkit.core.paths import CachePaths, DistributionSpec, PathResolver, safe_uri
from wrapperkit.core.verification import (
    compute_file_hash,
    is_valid_hash_format,
    verify_file_hash,
)

logger = logging.getLogger(__name__)

DEFAULT_LAUNCHER_PATH = "lib/ant-launcher.jar"
DEFAULT_EXECUTABLE_PATH = "bin/ant"


@dataclass
class InstallSettings:
    """Settings controlling how a distribution is installed and validated."""

    launcher_path: str = DEFAULT_LAUNCHER_PATH
    """Launcher artifact, relative to the installation root, that must exist"""

    executable_path: str = DEFAULT_EXECUTABLE_PATH
    """Entry-point script, relative to the installation root, made executable"""

    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    """Maximum time to wait for the install lock in seconds"""

    lock_poll_interval: float = DEFAULT_POLL_INTERVAL
    """Delay between lock attempts in seconds"""


@dataclass
class InstallResult:
    """Result of an install operation."""

    install_root: Path
    """The single top-level directory of the extracted distribution"""

    paths: CachePaths
    """Cache locations used for this distribution"""

    was_cached: bool
    """Whether a verified installation was already present"""

    downloaded: bool
    """Whether the archive was fetched during this call"""


class Installer:
    """
    Ensures a distribution is installed in the local cache.

    Installers hold no state between calls; all coordination between
    concurrent installs (threads or processes) goes through the file system.

    Example:
        >>> installer = Installer(PathResolver(get_wrapper_user_home(), Path.cwd()))
        >>> result = installer.ensure_installed(
        ...     DistributionSpec("https://example.org/dist/tool-1.2.3.zip")
        ... )
        >>> print(f"Installed at: {result.install_root}")
    """

    def __init__(
        self,
        path_resolver: PathResolver,
        downloader: Optional[Downloader] = None,
        settings: Optional[InstallSettings] = None,
    ):
        """
        Initialize installer.

        Args:
            path_resolver: Resolver mapping specs to cache paths
            downloader: Optional downloader. If None, uses default network settings.
            settings: Optional install settings. If None, uses defaults.
        """
        self.path_resolver = path_resolver
        self.downloader = downloader or Downloader()
        self.settings = settings or InstallSettings()

    def ensure_installed(
        self,
        spec: DistributionSpec,
        cancel_event: Optional[threading.Event] = None,
    ) -> InstallResult:
        """
        Install a distribution if needed and return its installation root.

        Args:
            spec: Distribution to install
            cancel_event: Optional event that aborts an in-progress download

        Returns:
            InstallResult with the installation root

        Raises:
            ConfigurationError: If the distribution can't be resolved to cache paths
                or its checksum is not a SHA-256 hex digest
            LockTimeoutError: If another installer holds the lock too long
            NetworkError: If the download fails
            IntegrityError: If the archive checksum doesn't match
            ArchiveExtractionError: If the archive can't be extracted
            StructuralError: If the extracted distribution has the wrong layout
            DistributionIOError: For any other file system failure
        """
        if spec.sha256_sum and not is_valid_hash_format(spec.sha256_sum.strip(), "sha256"):
            raise ConfigurationError(
                f"Checksum for {safe_uri(spec.source_uri)} is not a valid SHA-256 "
                f"checksum: {spec.sha256_sum}"
            )

        paths = self.path_resolver.resolve(spec)

        return with_lock(
            paths.archive_file,
            lambda: self._install_locked(spec, paths, cancel_event),
            timeout=self.settings.lock_timeout,
            poll_interval=self.settings.lock_poll_interval,
        )

    def _install_locked(
        self,
        spec: DistributionSpec,
        paths: CachePaths,
        cancel_event: Optional[threading.Event],
    ) -> InstallResult:
        try:
            return self._install(spec, paths, cancel_event)
        except OSError as e:
            raise DistributionIOError(
                f"Failed to install {safe_uri(spec.source_uri)}: {e}"
            ) from e

    def _install(
        self,
        spec: DistributionSpec,
        paths: CachePaths,
        cancel_event: Optional[threading.Event],
    ) -> InstallResult:
        marker_file = paths.marker_file
        extraction_dir = paths.extraction_dir

        if extraction_dir.is_dir() and marker_file.is_file():
            try:
                install_root = self.verify_distribution_root(
                    extraction_dir, str(extraction_dir)
                )
                logger.debug(f"Distribution already installed: {install_root}")
                return InstallResult(
                    install_root=install_root,
                    paths=paths,
                    was_cached=True,
                    downloaded=False,
                )
            except StructuralError as e:
                logger.warning(f"{e} Reinstalling.")

        marker_file.unlink(missing_ok=True)

        safe_distribution_uri = safe_uri(spec.source_uri)
        downloaded = False

        if not paths.archive_file.is_file():
            self._download(spec.source_uri, paths, cancel_event)
            downloaded = True

        for link in list_directory_links(extraction_dir):
            logger.info(f"Deleting link {link}")
            link.unlink()

        for directory in list_directories(extraction_dir):
            logger.info(f"Deleting directory {directory}")
            safe_rmtree(directory, require_prefix=extraction_dir)

        if spec.sha256_sum:
            self._verify_checksum(safe_distribution_uri, paths.archive_file, spec.sha256_sum)

        try:
            extract_archive(paths.archive_file, extraction_dir)
        except ArchiveExtractionError as e:
            logger.error(
                f"Could not unzip {paths.archive_file} to {extraction_dir}. Reason: {e}"
            )
            raise

        install_root = self.verify_distribution_root(extraction_dir, safe_distribution_uri)
        self._set_execution_permissions(install_root)
        marker_file.touch()

        logger.info(f"Installed {safe_distribution_uri} at {install_root}")
        return InstallResult(
            install_root=install_root,
            paths=paths,
            was_cached=False,
            downloaded=downloaded,
        )

    def _download(
        self,
        uri: str,
        paths: CachePaths,
        cancel_event: Optional[threading.Event],
    ) -> None:
        """Download to the '.part' sibling, then move it onto the archive path."""
        partial_file = paths.partial_file
        partial_file.unlink(missing_ok=True)

        self.downloader.download(uri, partial_file, cancel_event=cancel_event)
        partial_file.replace(paths.archive_file)

    def _verify_checksum(self, source: str, archive_file: Path, expected: str) -> None:
        """
        Compare the archive's SHA-256 against the configured value.

        On mismatch the archive is deleted so the next attempt downloads it
        again.

        Raises:
            IntegrityError: If the checksum doesn't match
        """
        if verify_file_hash(archive_file, expected, "sha256"):
            logger.debug(f"Checksum verified: {archive_file}")
            return

        actual = compute_file_hash(archive_file, "sha256")
        archive_file.unlink(missing_ok=True)
        raise IntegrityError(
            "Verification of distribution failed!\n\n"
            "Your distribution may have been tampered with.\n"
            "Confirm that the 'distribution_sha256_sum' property in your wrapper "
            "configuration is correct and you are downloading the distribution "
            "from a trusted source.\n\n"
            f" Distribution URL: {source}\n"
            f"Download Location: {archive_file}\n"
            f"Expected checksum: {expected}\n"
            f"  Actual checksum: {actual}\n"
        )

    def verify_distribution_root(self, extraction_dir: Path, description: str) -> Path:
        """
        Check the extracted layout and return the installation root.

        Args:
            extraction_dir: Directory the archive was extracted into
            description: How to name the distribution in error messages

        Returns:
            The single top-level directory

        Raises:
            StructuralError: If there isn't exactly one top-level directory, or
                it lacks the launcher artifact
        """
        directories = list_directories(extraction_dir)

        if not directories:
            raise StructuralError(
                f"Distribution {description} does not contain any directories. "
                "Expected to find exactly 1 directory!"
            )
        if len(directories) != 1:
            raise StructuralError(
                f"Distribution {description} contains too many directories "
                f"({len(directories)}). Expected to find exactly 1 directory!"
            )

        install_root = directories[0]
        launcher = install_root / self.settings.launcher_path
        if not launcher.is_file():
            raise StructuralError(
                f"Distribution {description} does not appear to contain a runtime "
                f"distribution: expected {self.settings.launcher_path} in {install_root.name}!"
            )

        return install_root

    def _set_execution_permissions(self, install_root: Path) -> None:
        """Make the entry-point script executable; failures are only logged."""
        if IS_WINDOWS:
            return

        executable = install_root / self.settings.executable_path
        try:
            make_executable(executable)
        except OSError as e:
            logger.warning(f"Could not set executable permissions for: {executable} ({e})")


def ensure_installed(
    spec: DistributionSpec,
    user_home: Optional[Union[str, Path]] = None,
    project_dir: Optional[Union[str, Path]] = None,
    network: Optional[NetworkSettings] = None,
    settings: Optional[InstallSettings] = None,
) -> InstallResult:
    """
    Convenience function to install a distribution.

    Creates an installer and performs the install in one call.

    Args:
        spec: Distribution to install
        user_home: Wrapper user home (default: resolved from environment)
        project_dir: Project directory (default: current directory)
        network: Optional network settings
        settings: Optional install settings

    Returns:
        InstallResult with the installation root

    Example:
        >>> from wrapperkit.wrapper.installer import ensure_installed
        >>> result = ensure_installed(DistributionSpec("https://example.org/tool-1.2.3.zip"))
        >>> print(result.install_root)
    """
    resolver = PathResolver(
        get_wrapper_user_home(user_home), Path(project_dir) if project_dir else Path.cwd()
    )
    installer = Installer(resolver, Downloader(network), settings)
    return installer.ensure_installed(spec)
