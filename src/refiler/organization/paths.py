"""Path helpers shared by the executor and the reversal engine."""

from __future__ import annotations

import os
from pathlib import Path
from typing import AbstractSet
from uuid import uuid4


def unique_path(path: Path, reserved: AbstractSet[Path] | None = None) -> Path:
    """Return ``path`` if it is free, else the first free ``stem_N.ext`` sibling.

    The check is not atomic: callers write to the returned path immediately and
    accept that a concurrent writer could still claim it first.

    Args:
        path: Desired destination path.
        reserved: Additional paths to treat as occupied.

    Returns:
        Path: Unoccupied path in the same directory.
    """

    taken = reserved or frozenset()

    def _occupied(candidate: Path) -> bool:
        return os.path.lexists(candidate) or candidate in taken

    if not _occupied(path):
        return path

    stem, suffix = _split_name(path.name)
    counter = 1
    while True:
        candidate = path.with_name(f"{stem}_{counter}{suffix}")
        if not _occupied(candidate):
            return candidate
        counter += 1


def backup_name(folder_name: str) -> str:
    """Return the name used to move a file out of the way of a new folder."""
    return f"{folder_name}_file_backup_{uuid4().hex[:8]}"


def normalize(path: Path) -> Path:
    """Return an absolute, lexically normalized path without touching the disk."""
    return Path(os.path.normpath(os.path.abspath(path)))


def is_within(path: Path, ancestor: Path) -> bool:
    """Return whether ``ancestor`` equals ``path`` or is one of its parents."""
    return path == ancestor or ancestor in path.parents


def is_hidden_name(name: str) -> bool:
    return name.startswith(".") and name not in {".", ".."}


def _split_name(name: str) -> tuple[str, str]:
    # Dotfiles such as ".env" have no extension to preserve.
    if name.startswith(".") and name.count(".") == 1:
        return name, ""
    stem, dot, extension = name.rpartition(".")
    if not dot or not stem:
        return name, ""
    return stem, f".{extension}"


__all__ = ["unique_path", "backup_name", "normalize", "is_within", "is_hidden_name"]
