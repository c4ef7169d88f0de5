"""Top-level package for Refiler, a reversible folder organizer."""

from importlib import metadata as _metadata

try:
    __version__ = _metadata.version("refiler")
except _metadata.PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.0.0"

__all__ = ["__version__"]
