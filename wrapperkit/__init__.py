"""
WrapperKit - download, verify and cache a runtime distribution on first use.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wrapperkit")
except PackageNotFoundError:
    __version__ = "0.1.0"
