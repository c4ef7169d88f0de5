"""Per-tree ownership of the executor, undo stack and revert guard."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .errors import FileSystemError, NoOperationToUndoError
from .executor import DEFAULT_MAX_DEPTH, OperationExecutor
from .guard import RevertGuard
from .models import OrganizationPlan
from .operations import FileOperation
from .paths import is_within, normalize
from .reversal import ReversalEngine, ReversalResult

LOGGER = logging.getLogger(__name__)


class FileSystemManager:
    """Serialize every mutation of one directory tree and keep its undo stack.

    Apply and reverse calls on the same manager never overlap: they run under a
    re-entrant lock, which plays the role of the tree's single owning actor.
    The guard is not behind that lock so watchers can query it at any time.
    """

    def __init__(
        self,
        root: Path,
        *,
        guard: RevertGuard | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialize the manager for ``root``.

        Args:
            root: Tree root. Empty-folder cleanup never climbs above it.
            guard: Optional guard to share; a new one is created otherwise.
            max_depth: Deepest folder nesting accepted from a plan.
        """
        self._root = normalize(root)
        self._guard = guard or RevertGuard()
        self._executor = OperationExecutor(max_depth=max_depth)
        self._reversal = ReversalEngine(self._guard, self._root)
        self._lock = threading.RLock()
        self._undo_stack: list[list[FileOperation]] = []

    @property
    def root(self) -> Path:
        return self._root

    @property
    def guard(self) -> RevertGuard:
        return self._guard

    @property
    def undo_depth(self) -> int:
        """Return the number of batches that can still be undone."""
        with self._lock:
            return len(self._undo_stack)

    def undo_batches(self) -> list[list[FileOperation]]:
        """Return a copy of the undo stack, oldest batch first."""
        with self._lock:
            return [list(batch) for batch in self._undo_stack]

    # ------------------------------------------------------------------ #
    # Apply                                                              #
    # ------------------------------------------------------------------ #

    def apply_organization(
        self,
        plan: OrganizationPlan,
        base_directory: Path | None = None,
        dry_run: bool = False,
    ) -> list[FileOperation]:
        """Create the plan's folders, then move its files.

        Args:
            plan: Validated plan to execute.
            base_directory: Directory to organize; defaults to the tree root.
            dry_run: Return the would-be operations without touching the disk.

        Returns:
            list[FileOperation]: Operations in creation order.
        """
        base = self._resolve_base(base_directory)
        with self._lock:
            return self._record(lambda: self._executor.apply(plan, base, dry_run), dry_run)

    def create_folders(
        self,
        plan: OrganizationPlan,
        base_directory: Path | None = None,
        dry_run: bool = False,
    ) -> list[FileOperation]:
        """Run the folder phase alone; its operations form their own undo batch."""
        base = self._resolve_base(base_directory)
        with self._lock:
            return self._record(
                lambda: self._executor.create_folders(plan, base, dry_run), dry_run
            )

    def move_files(
        self,
        plan: OrganizationPlan,
        base_directory: Path | None = None,
        dry_run: bool = False,
    ) -> list[FileOperation]:
        """Run the file phase alone; its operations form their own undo batch."""
        base = self._resolve_base(base_directory)
        with self._lock:
            return self._record(lambda: self._executor.move_files(plan, base, dry_run), dry_run)

    def rename_file(self, path: Path, new_name: str, dry_run: bool = False) -> FileOperation:
        """Rename one file, failing with ``PathAlreadyExistsError`` on collisions."""
        with self._lock:
            operation = self._executor.rename_file(path, new_name, dry_run)
            if not dry_run:
                self._undo_stack.append([operation])
            return operation

    def copy_file(self, path: Path, destination_dir: Path, dry_run: bool = False) -> FileOperation:
        with self._lock:
            operation = self._executor.copy_file(path, destination_dir, dry_run)
            if not dry_run:
                self._undo_stack.append([operation])
            return operation

    def delete_file(
        self,
        path: Path,
        trash_dir: Path | None = None,
        dry_run: bool = False,
    ) -> FileOperation:
        with self._lock:
            operation = self._executor.delete_file(path, trash_dir, dry_run)
            if not dry_run:
                self._undo_stack.append([operation])
            return operation

    # ------------------------------------------------------------------ #
    # Reverse                                                            #
    # ------------------------------------------------------------------ #

    def reverse_operations(self, operations: Sequence[FileOperation]) -> ReversalResult:
        """Reverse an arbitrary batch and drop its entries from the undo stack."""
        batch = list(operations)
        with self._lock:
            result = self._reversal.reverse(batch)
            self._discard(operation.id for operation in batch)
            return result

    def undo_last_operation(self) -> ReversalResult:
        """Reverse the most recent batch on the undo stack.

        Raises:
            NoOperationToUndoError: If nothing has been applied since the last undo.
        """
        with self._lock:
            if not self._undo_stack:
                raise NoOperationToUndoError("No operation to undo")
            batch = self._undo_stack[-1]
            result = self._reversal.reverse(batch)
            self._undo_stack.pop()
            return result

    def is_path_being_reverted(self, path: Path | str) -> bool:
        return self._guard.is_path_being_reverted(path)

    def clear_undo_stack(self) -> None:
        with self._lock:
            self._undo_stack.clear()

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _record(
        self, run: Callable[[], list[FileOperation]], dry_run: bool
    ) -> list[FileOperation]:
        try:
            operations = run()
        except FileSystemError as exc:
            if exc.operations and not dry_run:
                LOGGER.warning(
                    "Batch aborted after %d operation(s); they remain undoable",
                    len(exc.operations),
                )
                self._undo_stack.append(list(exc.operations))
            raise
        if operations and not dry_run:
            self._undo_stack.append(list(operations))
        return operations

    def _discard(self, operation_ids: Iterable[object]) -> None:
        ids = set(operation_ids)
        remaining: list[list[FileOperation]] = []
        for batch in self._undo_stack:
            kept = [operation for operation in batch if operation.id not in ids]
            if kept:
                remaining.append(kept)
        self._undo_stack = remaining

    def _resolve_base(self, base_directory: Path | None) -> Path:
        if base_directory is None:
            return self._root
        base = normalize(base_directory)
        if not is_within(base, self._root):
            raise FileSystemError(
                f"{base} is outside the managed tree {self._root}", path=base
            )
        return base


class ManagerRegistry:
    """Thread-safe registry of :class:`FileSystemManager` objects keyed by tree root."""

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._lock = threading.Lock()
        self._managers: dict[Path, FileSystemManager] = {}
        self._max_depth = max_depth

    def get(self, root: Path) -> FileSystemManager:
        """Return the manager for ``root``, creating it on first use."""
        key = normalize(root)
        with self._lock:
            manager = self._managers.get(key)
            if manager is None:
                manager = FileSystemManager(key, max_depth=self._max_depth)
                self._managers[key] = manager
            return manager

    def manager_for(self, path: Path) -> FileSystemManager | None:
        """Return the manager of the deepest registered root containing ``path``."""
        target = normalize(path)
        with self._lock:
            owners = [root for root in self._managers if is_within(target, root)]
            if not owners:
                return None
            return self._managers[max(owners, key=lambda root: len(root.parts))]

    def is_path_being_reverted(self, path: Path | str) -> bool:
        """Return whether any managed tree is reverting ``path``."""
        with self._lock:
            managers = list(self._managers.values())
        return any(manager.is_path_being_reverted(path) for manager in managers)

    def roots(self) -> list[Path]:
        with self._lock:
            return sorted(self._managers)


__all__ = ["FileSystemManager", "ManagerRegistry"]
