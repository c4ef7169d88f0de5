"""Shared fixtures for building directory trees and plans."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

import pytest

from refiler.organization import FileItem, FolderSuggestion, OrganizationPlan, RenameMapping


def _touch(path: Path, content: str = "data") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _suggestion(
    name: str,
    files: Iterable[Path] = (),
    *,
    renames: Optional[Mapping[str, str]] = None,
    subfolders: Iterable[FolderSuggestion] = (),
) -> FolderSuggestion:
    items = [FileItem.from_path(path) for path in files]
    mappings = [
        RenameMapping(original_file=item, suggested_name=(renames or {})[item.display_name])
        for item in items
        if item.display_name in (renames or {})
    ]
    return FolderSuggestion(
        folder_name=name,
        files=items,
        rename_mappings=mappings,
        subfolders=list(subfolders),
    )


def snapshot(root: Path) -> dict[str, str]:
    """Return ``relative path -> content`` for every file under ``root``."""
    return {
        path.relative_to(root).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def touch() -> Callable[..., Path]:
    return _touch


@pytest.fixture
def suggestion() -> Callable[..., FolderSuggestion]:
    return _suggestion


@pytest.fixture
def plan() -> Callable[..., OrganizationPlan]:
    def _plan(*suggestions: FolderSuggestion) -> OrganizationPlan:
        return OrganizationPlan(suggestions=list(suggestions))

    return _plan


@pytest.fixture
def tree_snapshot() -> Callable[[Path], dict[str, str]]:
    return snapshot
