"""Exceptions raised while loading or updating configuration."""

from __future__ import annotations


class ConfigError(Exception):
    """Raised when configuration data cannot be read, merged or validated.

    Attributes:
        key: Dotted setting name involved in the failure, when known.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
