"""Shared record of paths that are currently being reverted."""

from __future__ import annotations

import threading
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from .paths import normalize


class RevertGuard:
    """Thread-safe set of paths under active reversal.

    A path counts as protected when it is marked itself or when one of its
    ancestors is marked, so watchers observing a folder under reversal see the
    whole subtree as busy. Marks are counted, which lets two overlapping
    reversals share a path without one clearing the other's protection.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._marks: Counter[Path] = Counter()

    def mark_paths_as_reverting(self, paths: Iterable[Path | str]) -> list[Path]:
        """Mark ``paths`` as reverting and return the normalized paths marked."""
        marked = sorted({normalize(Path(path)) for path in paths})
        with self._lock:
            self._marks.update(marked)
        return marked

    def clear_revert_marks(self, paths: Iterable[Path | str]) -> None:
        """Release marks previously placed with :meth:`mark_paths_as_reverting`."""
        released = {normalize(Path(path)) for path in paths}
        with self._lock:
            for path in released:
                remaining = self._marks[path] - 1
                if remaining > 0:
                    self._marks[path] = remaining
                else:
                    del self._marks[path]

    def is_path_being_reverted(self, path: Path | str) -> bool:
        """Return whether ``path`` or one of its ancestors is marked."""
        candidate = normalize(Path(path))
        with self._lock:
            if not self._marks:
                return False
            if candidate in self._marks:
                return True
            return any(parent in self._marks for parent in candidate.parents)

    @contextmanager
    def reverting(self, paths: Iterable[Path | str]) -> Iterator[list[Path]]:
        """Mark ``paths`` for the duration of the block, clearing them on any exit."""
        marked = self.mark_paths_as_reverting(paths)
        try:
            yield marked
        finally:
            self.clear_revert_marks(marked)

    @property
    def active_paths(self) -> list[Path]:
        with self._lock:
            return sorted(self._marks)


__all__ = ["RevertGuard"]
