"""Errors raised by the organization engine."""

from __future__ import annotations

import errno
import os
from pathlib import Path
from typing import Sequence

from .operations import FileOperation


class FileSystemError(Exception):
    """Base exception for filesystem mutations performed by the engine.

    Attributes:
        path: Path involved in the failing call, when known.
        operations: Operations already performed by the batch before it aborted.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        operations: Sequence[FileOperation] | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.operations: list[FileOperation] = list(operations or [])


class NoOperationToUndoError(FileSystemError):
    """Raised when the undo stack is empty."""


class PathNotFoundError(FileSystemError):
    """Raised when a required path does not exist."""


class PermissionDeniedError(FileSystemError):
    """Raised when the filesystem refuses access to a path."""


class InvalidPathError(FileSystemError):
    """Raised when a path or name cannot be used for the requested mutation."""


class PathAlreadyExistsError(FileSystemError):
    """Raised by explicit single-file renames when the target is occupied."""


class RevertInProgressError(FileSystemError):
    """Raised when a tree is being reverted and the caller requires exclusivity."""


class PlanValidationError(FileSystemError):
    """Raised when a plan references files or folders the engine cannot use."""


def translate_os_error(exc: OSError, path: Path | None = None) -> FileSystemError:
    """Map an ``OSError`` onto the engine's error taxonomy.

    Args:
        exc: Error raised by the underlying filesystem call.
        path: Path the failing call was operating on.

    Returns:
        FileSystemError: Typed error; callers raise it ``from exc``.
    """

    target = path if path is not None else _path_from(exc)
    detail = exc.strerror or str(exc)
    if isinstance(exc, FileNotFoundError):
        return PathNotFoundError(f"File not found: {target} ({detail})", path=target)
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(f"Permission denied: {target} ({detail})", path=target)
    if isinstance(exc, FileExistsError):
        return PathAlreadyExistsError(f"Path already exists: {target}", path=target)
    if isinstance(exc, (NotADirectoryError, IsADirectoryError)) or exc.errno in {
        errno.ENAMETOOLONG,
        errno.EINVAL,
    }:
        return InvalidPathError(f"Invalid path: {target} ({detail})", path=target)
    return FileSystemError(f"Filesystem error on {target}: {detail}", path=target)


def _path_from(exc: OSError) -> Path | None:
    if exc.filename is None:
        return None
    return Path(os.fsdecode(exc.filename))


__all__ = [
    "FileSystemError",
    "NoOperationToUndoError",
    "PathNotFoundError",
    "PermissionDeniedError",
    "InvalidPathError",
    "PathAlreadyExistsError",
    "RevertInProgressError",
    "PlanValidationError",
    "translate_os_error",
]
