"""File discovery utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from refiler.organization.models import FileItem

from .rules import ExclusionRule, filter_files

LOGGER = logging.getLogger(__name__)


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


class DirectoryScanner:
    """Discover files within a directory tree subject to configuration filters."""

    def __init__(
        self,
        *,
        include_hidden: bool = False,
        follow_symlinks: bool = False,
        rules: Iterable[ExclusionRule] = (),
    ) -> None:
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.rules = list(rules)

    def scan(self, root: Path) -> list[FileItem]:
        """Return every file under ``root`` that passes the hidden and exclusion filters."""
        root = root.expanduser().absolute()
        if not root.is_dir():
            raise FileNotFoundError(f"Directory does not exist: {root}")
        return filter_files(self._iter_items(root), self.rules)

    def _iter_items(self, root: Path) -> Iterator[FileItem]:
        for path in sorted(root.rglob("*")):
            try:
                relative = path.relative_to(root)
            except ValueError:
                relative = Path(path.name)
            if not self.include_hidden and _is_hidden(relative):
                continue
            if path.is_symlink() and not self.follow_symlinks:
                continue
            if not path.is_file():
                continue
            try:
                yield FileItem.from_path(path)
            except OSError as exc:
                LOGGER.debug("Skipping %s: %s", path, exc)


__all__ = ["DirectoryScanner"]
