"""
Test utilities for WrapperKit testing.

This package provides archive builders and a local distribution server to
simplify test writing.
"""

from .builders import (
    DIST_NAME,
    DistributionBuilder,
    distribution_zip,
    sha256_hex,
)
from .server import DistributionServer

__all__ = [
    "DIST_NAME",
    "DistributionBuilder",
    "distribution_zip",
    "sha256_hex",
    "DistributionServer",
]
