"""
File system utilities for WrapperKit.

This module provides the file operations the installer needs:
- Archive extraction (zip, tar, tar.gz, tar.bz2, tar.xz), streamed entry by entry
- Safe file operations (atomic writes, safe deletion)
- Directory listing and permission helpers

Every archive member is validated before anything is written, so a
malicious archive can't escape its destination directory.
"""

import logging
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import List, Optional, Union

from wrapperkit.core.exceptions import (
    ArchiveExtractionError,
    DistributionIOError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
)

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = os.name == "nt"

COPY_BUFFER_SIZE = 4096


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check whether ``path`` lies inside ``parent``.

    Example:
        >>> is_relative_to(Path('/a/b/c'), Path('/a'))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def list_directories(path: Union[str, Path]) -> List[Path]:
    """
    List the immediate subdirectories of a directory.

    Symbolic links are not subdirectories, even when they point to one.
    Returns an empty list if the directory does not exist.
    """
    path = Path(path)
    if not path.is_dir():
        return []
    return sorted(
        item for item in path.iterdir() if item.is_dir() and not item.is_symlink()
    )


def list_directory_links(path: Union[str, Path]) -> List[Path]:
    """List the symbolic links to directories directly inside a directory."""
    path = Path(path)
    if not path.is_dir():
        return []
    return sorted(item for item in path.iterdir() if item.is_symlink() and item.is_dir())


# ============================================================================
# Archive Extraction
# ============================================================================


def _member_target(name: str, destination: Path) -> Path:
    """
    Resolve where an archive member is written, refusing traversal.

    Raises:
        InsecureArchiveError: If the member would land outside destination
    """
    target = (destination / name).resolve()
    if not is_relative_to(target, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )
    return target


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract an archive to a destination directory.

    Entries are processed one by one: directory entries create directories
    (including missing intermediates) and file entries are streamed to their
    target path. Any error aborts the whole extraction.

    Supported formats:
    - .zip
    - .tar
    - .tar.gz, .tgz
    - .tar.bz2, .tbz2
    - .tar.xz

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        InsecureArchiveError: If archive contains malicious paths
        ArchiveExtractionError: If extraction fails for any other reason

    Example:
        >>> extract_archive('apache-ant-1.10.12-bin.zip', '/tmp/ant')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.is_file():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    archive_name = archive_path.name.lower()

    try:
        destination.mkdir(parents=True, exist_ok=True)

        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz")
        elif archive_name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, destination, "r:bz2")
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz")
        elif archive_name.endswith(".tar"):
            _extract_tar(archive_path, destination, "r:")
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.suffix}. "
                "Supported: .zip, .tar, .tar.gz, .tar.bz2, .tar.xz"
            )
    except ArchiveExtractionError:
        raise
    except Exception as e:
        raise ArchiveExtractionError(
            f"Could not extract {archive_path} to {destination}. Reason: {e}"
        ) from e


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive, applying stored unix permissions."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()

        # Validate all paths first
        for member in members:
            _member_target(member.filename, destination)

        for member in members:
            target = _member_target(member.filename, destination)

            if member.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(member) as source, open(target, "wb") as out:
                shutil.copyfileobj(source, out, COPY_BUFFER_SIZE)

            mode = (member.external_attr >> 16) & 0o777
            if mode and not IS_WINDOWS:
                os.chmod(target, mode)


def _extract_tar(archive_path: Path, destination: Path, mode: str) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()

        # Validate all paths first
        for member in members:
            _member_target(member.name, destination)

        for member in members:
            target = _member_target(member.name, destination)

            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.isfile():
                target.parent.mkdir(parents=True, exist_ok=True)
                source = tar.extractfile(member)
                with source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out, COPY_BUFFER_SIZE)
                if not IS_WINDOWS:
                    os.chmod(target, member.mode & 0o777)
            else:
                # Links and special files are not part of a runtime distribution
                logger.debug(f"Skipping non-regular archive member: {member.name}")


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    This ensures the file is never in a partially-written state.
    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Example:
        >>> atomic_write('wrapper/wrapper.yaml', 'distribution_url: https://...')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory (ensures same filesystem)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        DistributionIOError: If path is not under require_prefix or deletion fails

    Example:
        >>> safe_rmtree('/cache/dists/tool/abc/tool-1.2', require_prefix='/cache/dists')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise DistributionIOError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise DistributionIOError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, stat.S_IWRITE)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise DistributionIOError(f"Failed to remove directory '{path}': {e}") from e


def make_executable(path: Union[str, Path]) -> None:
    """
    Add execute permission for user, group and others (chmod 755 semantics).

    Raises:
        OSError: If the file is missing or permissions can't be changed
    """
    path = Path(path)
    current = path.stat().st_mode
    path.chmod(current | stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)


__all__ = [
    "IS_WINDOWS",
    "is_relative_to",
    "list_directories",
    "list_directory_links",
    "extract_archive",
    "atomic_write",
    "safe_rmtree",
    "make_executable",
]
