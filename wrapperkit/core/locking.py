"""
Exclusive access to cache resources for WrapperKit.

Several independent processes (parallel builds sharing one user-level
cache, for instance) may try to install the same distribution at once. This
module serializes them with an OS-level advisory lock on a sidecar file next
to the protected resource.

Features:
- Cross-process locking (not just threading), via the `filelock` library
- Bounded wait with a configurable poll interval
- Lock always released, whether the task succeeds or raises
- No state kept between calls

Usage:
    from wrapperkit.core.locking import with_lock, exclusive_access

    result = with_lock(archive_file, lambda: install(archive_file), timeout=120)

    with exclusive_access(archive_file, timeout=120):
        # Only one process at a time gets here for this archive
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, TypeVar, Union

from filelock import FileLock, Timeout as LockTimeout

from wrapperkit.core.exceptions import DistributionIOError, LockTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCK_FILE_SUFFIX = ".lck"
DEFAULT_LOCK_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 0.2


def lock_file_for(resource_path: Union[str, Path]) -> Path:
    """Sidecar lock file guarding a resource ('<resource>.lck')."""
    resource_path = Path(resource_path)
    return resource_path.with_name(resource_path.name + LOCK_FILE_SUFFIX)


@contextmanager
def exclusive_access(
    resource_path: Union[str, Path],
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
):
    """
    Hold an exclusive cross-process lock on a resource.

    The lock lives in a sidecar file beside the resource. Acquisition makes a
    non-blocking attempt, sleeps ``poll_interval`` on failure and retries until
    ``timeout`` seconds have passed.

    Args:
        resource_path: Path of the resource to protect (need not exist)
        timeout: Maximum wait time in seconds
        poll_interval: Delay between acquisition attempts in seconds

    Yields:
        Path to the lock file

    Raises:
        LockTimeoutError: If the lock can't be acquired within timeout
        DistributionIOError: If the lock file or its directory can't be created

    Example:
        >>> with exclusive_access(Path('/cache/tool.zip'), timeout=30):
        ...     # Safely inspect and modify /cache/tool.zip
        ...     pass
    """
    resource_path = Path(resource_path)
    lock_path = lock_file_for(resource_path)

    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if not lock_path.parent.is_dir():
            raise DistributionIOError(
                f"Could not create parent directory for lock file {lock_path}: {e}"
            ) from e

    lock = FileLock(lock_path)

    try:
        lock.acquire(timeout=timeout, poll_interval=poll_interval)
    except LockTimeout as e:
        logger.error(
            f"Could not acquire lock for {resource_path} after {timeout}s. "
            "Another process may be installing this distribution."
        )
        raise LockTimeoutError(resource_path, timeout) from e
    except OSError as e:
        raise DistributionIOError(f"Could not open lock file {lock_path}: {e}") from e

    logger.debug(f"Acquired lock: {lock_path}")
    try:
        yield lock_path
    finally:
        lock.release()
        logger.debug(f"Released lock: {lock_path}")


def with_lock(
    resource_path: Union[str, Path],
    task: Callable[[], T],
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> T:
    """
    Run a task while holding exclusive access to a resource.

    Args:
        resource_path: Path of the resource to protect
        task: Zero-argument callable run inside the critical section
        timeout: Maximum wait time in seconds
        poll_interval: Delay between acquisition attempts in seconds

    Returns:
        Whatever ``task`` returns

    Raises:
        LockTimeoutError: If the lock can't be acquired within timeout
        Exception: Anything raised by ``task``, after the lock is released
    """
    with exclusive_access(resource_path, timeout=timeout, poll_interval=poll_interval):
        return task()


__all__ = [
    "with_lock",
    "exclusive_access",
    "lock_file_for",
    "DEFAULT_LOCK_TIMEOUT",
    "DEFAULT_POLL_INTERVAL",
]
