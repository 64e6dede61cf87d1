"""
Command-line interface for WrapperKit.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
