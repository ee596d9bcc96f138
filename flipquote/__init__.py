"""Underwriting and quoting for short-term investment loans.

This module also exposes the package version for runtime display."""

from importlib import metadata

try:
    __version__ = metadata.version("flipquote")
except metadata.PackageNotFoundError:  # pragma: no cover - during local dev
    __version__ = "0.1.0"

__all__ = ["__version__"]
