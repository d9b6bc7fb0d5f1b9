"""Wireforge - Multi-language code generator for text-based network protocols."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wireforge")
except PackageNotFoundError:
    __version__ = "(local)"
