"""
Hash verification for downloaded distributions.

This module provides:
- Streaming hash computation (the file is never loaded into memory whole)
- Checksum verification with constant-time comparison
- Hash format validation for configured checksums
"""

import hashlib
import logging
import secrets
import string
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192

_HASH_LENGTHS = {
    "md5": 32,
    "sha1": 40,
    "sha256": 64,
    "sha512": 128,
}


def compute_file_hash(
    file_path: Union[str, Path], algorithm: str = "sha256", chunk_size: int = CHUNK_SIZE
) -> str:
    """
    Compute cryptographic hash of a file.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha256', 'sha512', 'sha1', 'md5')
        chunk_size: Number of bytes to read at once

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If algorithm is not supported

    Example:
        >>> compute_file_hash(Path('apache-ant-1.10.12-bin.zip'))
        'a3d5f6e8...'
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    algorithm = algorithm.lower()
    if algorithm not in _HASH_LENGTHS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    if algorithm in ("md5", "sha1"):
        logger.warning(
            f"{algorithm.upper()} is cryptographically weak and should not be used "
            "for security. Use SHA256 or SHA512 instead."
        )

    hasher = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    return hasher.hexdigest()


def is_valid_hash_format(hash_value: str, algorithm: str = "sha256") -> bool:
    """
    Check whether a string looks like a hex digest for the algorithm.

    Example:
        >>> is_valid_hash_format("a" * 64)
        True
        >>> is_valid_hash_format("not-a-hash")
        False
    """
    expected_length = _HASH_LENGTHS.get(algorithm.lower())
    if expected_length is None or len(hash_value) != expected_length:
        return False

    return all(c in string.hexdigits for c in hash_value)


def verify_file_hash(
    file_path: Union[str, Path], expected_hash: str, algorithm: str = "sha256"
) -> bool:
    """
    Verify file matches expected hash.

    Both digests are compared as lowercase hex strings, in constant time.

    Args:
        file_path: Path to file
        expected_hash: Expected hash value (hex string)
        algorithm: Hash algorithm

    Returns:
        True if hash matches, False otherwise

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    actual_hash = compute_file_hash(file_path, algorithm)
    return secrets.compare_digest(actual_hash, expected_hash.strip().lower())


__all__ = [
    "compute_file_hash",
    "verify_file_hash",
    "is_valid_hash_format",
]
