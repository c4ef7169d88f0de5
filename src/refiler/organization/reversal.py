"""Reversal of recorded operation logs."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .errors import translate_os_error
from .guard import RevertGuard
from .operations import FileOperation, OperationType
from .paths import is_hidden_name, normalize, unique_path

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ReversalResult:
    """Outcome of reversing one batch.

    Attributes:
        restored: Mapping of recorded destinations to the paths files were moved back to.
        skipped: Operations whose destination no longer existed.
        irreversible: Delete operations that could not be undone.
        removed_copies: Copies deleted during reversal.
        removed_folders: Folders removed by the cleanup pass.
    """

    restored: dict[Path, Path] = field(default_factory=dict)
    skipped: list[FileOperation] = field(default_factory=list)
    irreversible: list[FileOperation] = field(default_factory=list)
    removed_copies: list[Path] = field(default_factory=list)
    removed_folders: list[Path] = field(default_factory=list)


class ReversalEngine:
    """Undo operation logs newest-first and prune folders left empty.

    Args:
        guard: Guard that watchers consult while a batch is being reverted.
        boundary: Root of the managed tree. Empty-folder cleanup never removes the
            boundary itself or anything outside it.
    """

    def __init__(self, guard: RevertGuard, boundary: Path) -> None:
        self._guard = guard
        self._boundary = normalize(boundary)

    @property
    def guard(self) -> RevertGuard:
        return self._guard

    def reverse(self, operations: Sequence[FileOperation]) -> ReversalResult:
        """Reverse ``operations``, which must be given in creation order.

        Raises:
            FileSystemError: When a file cannot be moved back. Cleanup failures are
                logged and never raised.
        """

        result = ReversalResult()
        with self._guard.reverting(self._paths_to_guard(operations)):
            candidates: set[Path] = set()
            for operation in reversed(operations):
                self._reverse_one(operation, candidates, result)
            self._cleanup(candidates, result)
        return result

    def _paths_to_guard(self, operations: Sequence[FileOperation]) -> set[Path]:
        """Return the paths marked on the guard while ``operations`` are reversed.

        Besides every recorded source and destination, the folder each moved
        file returns into is marked, because watchers query by watched folder
        rather than by file. When files return to the top of the tree that
        folder is the tree root, so the whole tree reports as reverting until
        the batch is done.
        """
        paths: set[Path] = set()
        for operation in operations:
            paths.update(operation.touched_paths())
            if operation.is_file_relocation:
                paths.add(operation.source_path.parent)
        return paths

    def _reverse_one(
        self,
        operation: FileOperation,
        candidates: set[Path],
        result: ReversalResult,
    ) -> None:
        if operation.is_file_relocation:
            self._move_back(operation, candidates, result)
        elif operation.type is OperationType.CREATE_FOLDER:
            candidates.add(operation.source_path)
        elif operation.type is OperationType.DELETE_FILE:
            location = (
                f" (trashed copy remains at {operation.destination_path})"
                if operation.destination_path is not None
                else ""
            )
            LOGGER.warning("Cannot undo deletion of %s%s", operation.source_path, location)
            result.irreversible.append(operation)
        elif operation.type is OperationType.COPY_FILE:
            self._remove_copy(operation, candidates, result)

    def _move_back(
        self,
        operation: FileOperation,
        candidates: set[Path],
        result: ReversalResult,
    ) -> None:
        destination = operation.destination_path
        assert destination is not None
        source = operation.source_path

        if not os.path.lexists(destination):
            LOGGER.debug("Nothing to restore for %s: %s is gone", source, destination)
            result.skipped.append(operation)
            return

        try:
            source.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise translate_os_error(exc, source.parent) from exc

        target = source
        if os.path.lexists(source) and not self._release_created_folder(source, candidates):
            target = unique_path(source)
            LOGGER.info("%s is occupied; restoring %s to %s instead", source, destination, target)

        try:
            shutil.move(str(destination), str(target))
        except OSError as exc:
            raise translate_os_error(exc, destination) from exc

        result.restored[destination] = target

    def _release_created_folder(self, path: Path, candidates: set[Path]) -> bool:
        # A folder this batch created may sit where a backed-up file came from.
        if path not in candidates or path.is_symlink() or not path.is_dir():
            return False
        try:
            if not self._strip_hidden_files(path):
                return False
            path.rmdir()
        except OSError:
            return False
        candidates.discard(path)
        return True

    def _remove_copy(
        self,
        operation: FileOperation,
        candidates: set[Path],
        result: ReversalResult,
    ) -> None:
        destination = operation.destination_path
        assert destination is not None
        if not os.path.lexists(destination):
            result.skipped.append(operation)
            return
        try:
            destination.unlink()
        except OSError as exc:
            raise translate_os_error(exc, destination) from exc
        result.removed_copies.append(destination)
        if operation.metadata is not None and operation.metadata.created_destination_folder:
            candidates.add(destination.parent)

    # ------------------------------------------------------------------ #
    # Cleanup                                                            #
    # ------------------------------------------------------------------ #

    def _cleanup(self, created: set[Path], result: ReversalResult) -> None:
        # Only folders the batch itself created are ever removed.
        for folder in sorted(created, key=lambda path: len(path.parts), reverse=True):
            self._prune(folder, created, result)

    def _prune(self, folder: Path, created: set[Path], result: ReversalResult) -> None:
        current = folder
        while current in created and self._inside_boundary(current):
            if current.is_symlink() or not current.is_dir():
                return
            try:
                if not self._strip_hidden_files(current):
                    return
                current.rmdir()
            except OSError as exc:
                LOGGER.warning("Leaving folder %s in place: %s", current, exc)
                return
            LOGGER.debug("Removed empty folder %s", current)
            result.removed_folders.append(current)
            current = current.parent

    def _inside_boundary(self, path: Path) -> bool:
        return self._boundary in path.parents

    def _strip_hidden_files(self, folder: Path) -> bool:
        """Delete the dotfiles in ``folder`` if they are all it holds.

        Returns:
            bool: Whether ``folder`` is empty afterwards. Folders holding any
            visible entry or a hidden directory are left untouched.
        """
        entries = list(folder.iterdir())
        for entry in entries:
            if not is_hidden_name(entry.name):
                return False
            if entry.is_dir() and not entry.is_symlink():
                return False
        for entry in entries:
            entry.unlink()
        return True


__all__ = ["ReversalEngine", "ReversalResult"]
