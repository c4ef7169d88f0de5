"""Executor for organization plans."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Iterable

from .errors import (
    FileSystemError,
    InvalidPathError,
    PathAlreadyExistsError,
    PathNotFoundError,
    translate_os_error,
)
from .models import FileItem, FolderSuggestion, OrganizationPlan
from .operations import FileOperation, OperationMetadata, OperationType
from .paths import backup_name, normalize, unique_path

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


class OperationExecutor:
    """Apply organization plans to a directory and record every mutation.

    The executor holds no state between calls; ordering and undo bookkeeping
    belong to the owning :class:`~refiler.organization.manager.FileSystemManager`.
    """

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._max_depth = max(1, max_depth)

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def apply(
        self,
        plan: OrganizationPlan,
        base: Path,
        dry_run: bool = False,
    ) -> list[FileOperation]:
        """Create every suggested folder, then place every file.

        Args:
            plan: Validated organization plan.
            base: Directory the plan's top-level folders are created in.
            dry_run: When true, nothing is written and the would-be log is returned.

        Returns:
            list[FileOperation]: Operations in the order they were performed.

        Raises:
            FileSystemError: When a folder cannot be created or a file cannot be
                moved. ``operations`` on the error holds the partial log.
        """

        operations: list[FileOperation] = []
        self._run(operations, lambda: self._create_folders(plan, base, dry_run, operations))
        self._run(operations, lambda: self._move_files(plan, base, dry_run, operations))
        return operations

    def create_folders(
        self,
        plan: OrganizationPlan,
        base: Path,
        dry_run: bool = False,
    ) -> list[FileOperation]:
        """Run only the folder-creation phase of :meth:`apply`."""
        operations: list[FileOperation] = []
        self._run(operations, lambda: self._create_folders(plan, base, dry_run, operations))
        return operations

    def move_files(
        self,
        plan: OrganizationPlan,
        base: Path,
        dry_run: bool = False,
    ) -> list[FileOperation]:
        """Run only the file-placement phase of :meth:`apply`."""
        operations: list[FileOperation] = []
        self._run(operations, lambda: self._move_files(plan, base, dry_run, operations))
        return operations

    # ------------------------------------------------------------------ #
    # Single-file entry points                                           #
    # ------------------------------------------------------------------ #

    def rename_file(self, path: Path, new_name: str, dry_run: bool = False) -> FileOperation:
        """Rename a file in place without automatic conflict resolution.

        Raises:
            InvalidPathError: If ``new_name`` is empty or not a single path component.
            PathNotFoundError: If ``path`` does not exist.
            PathAlreadyExistsError: If another entry already uses ``new_name``.
        """

        _check_component(new_name)
        source = normalize(path)
        if not os.path.lexists(source):
            raise PathNotFoundError(f"File not found: {source}", path=source)
        destination = source.with_name(new_name)
        if destination == source:
            raise InvalidPathError(f"{source} is already named {new_name}", path=source)
        if os.path.lexists(destination):
            raise PathAlreadyExistsError(f"Path already exists: {destination}", path=destination)

        if not dry_run:
            try:
                source.rename(destination)
            except OSError as exc:
                raise translate_os_error(exc, source) from exc

        return FileOperation(
            type=OperationType.RENAME_FILE,
            source_path=source,
            destination_path=destination,
            metadata=OperationMetadata(
                original_filename=source.name,
                new_filename=destination.name,
                parent_folder=source.parent,
            ),
        )

    def copy_file(self, path: Path, destination_dir: Path, dry_run: bool = False) -> FileOperation:
        """Copy a file into ``destination_dir`` under a unique name."""
        source = normalize(path)
        if not source.is_file():
            raise PathNotFoundError(f"File not found: {source}", path=source)
        folder = normalize(destination_dir)
        destination = unique_path(folder / source.name)
        created_folder = not os.path.lexists(folder)

        if not dry_run:
            self._make_dirs(folder)
            try:
                shutil.copy2(source, destination)
            except OSError as exc:
                raise translate_os_error(exc, destination) from exc

        return FileOperation(
            type=OperationType.COPY_FILE,
            source_path=source,
            destination_path=destination,
            metadata=OperationMetadata(
                parent_folder=folder, created_destination_folder=created_folder
            ),
        )

    def delete_file(
        self,
        path: Path,
        trash_dir: Path | None = None,
        dry_run: bool = False,
    ) -> FileOperation:
        """Delete a file, or move it into ``trash_dir`` when one is given."""
        source = normalize(path)
        if not os.path.lexists(source):
            raise PathNotFoundError(f"File not found: {source}", path=source)
        if source.is_dir() and not source.is_symlink():
            raise InvalidPathError(f"Refusing to delete directory {source}", path=source)

        destination: Path | None = None
        if trash_dir is not None:
            destination = unique_path(normalize(trash_dir) / source.name)

        if not dry_run:
            try:
                if destination is not None:
                    self._make_dirs(destination.parent)
                    shutil.move(str(source), str(destination))
                else:
                    source.unlink()
            except OSError as exc:
                raise translate_os_error(exc, source) from exc

        return FileOperation(
            type=OperationType.DELETE_FILE,
            source_path=source,
            destination_path=destination,
            metadata=OperationMetadata(parent_folder=source.parent),
        )

    # ------------------------------------------------------------------ #
    # Phase A: folders                                                   #
    # ------------------------------------------------------------------ #

    def _create_folders(
        self,
        plan: OrganizationPlan,
        base: Path,
        dry_run: bool,
        operations: list[FileOperation],
    ) -> None:
        self._check_depth(plan.suggestions)
        root = normalize(base)
        created: set[Path] = set()
        for suggestion in plan.suggestions:
            self._create_folder_tree(suggestion, root, dry_run, operations, created)

    def _create_folder_tree(
        self,
        suggestion: FolderSuggestion,
        parent: Path,
        dry_run: bool,
        operations: list[FileOperation],
        created: set[Path],
    ) -> None:
        folder = parent / suggestion.folder_name
        self._ensure_folder(folder, suggestion.folder_name, dry_run, operations, created)
        for child in suggestion.subfolders:
            self._create_folder_tree(child, folder, dry_run, operations, created)

    def _ensure_folder(
        self,
        folder: Path,
        folder_name: str,
        dry_run: bool,
        operations: list[FileOperation],
        created: set[Path],
    ) -> None:
        if folder in created or folder.is_dir():
            return

        if os.path.lexists(folder):
            backup = unique_path(folder.with_name(backup_name(folder_name)))
            if not dry_run:
                try:
                    shutil.move(str(folder), str(backup))
                except OSError as exc:
                    raise translate_os_error(exc, folder) from exc
            LOGGER.info("Moved file %s out of the way of new folder (backup %s)", folder, backup)
            operations.append(
                FileOperation(
                    type=OperationType.MOVE_FILE,
                    source_path=folder,
                    destination_path=backup,
                    metadata=OperationMetadata(
                        created_during_organization=True,
                        parent_folder=folder.parent,
                    ),
                )
            )

        if not dry_run:
            self._make_dirs(folder)
        created.add(folder)
        operations.append(FileOperation(type=OperationType.CREATE_FOLDER, source_path=folder))

    # ------------------------------------------------------------------ #
    # Phase B: files                                                     #
    # ------------------------------------------------------------------ #

    def _move_files(
        self,
        plan: OrganizationPlan,
        base: Path,
        dry_run: bool,
        operations: list[FileOperation],
    ) -> None:
        self._check_depth(plan.suggestions)
        root = normalize(base)
        reserved: set[Path] = set()
        for suggestion in plan.suggestions:
            self._place_files(suggestion, root, root, dry_run, operations, reserved)

    def _place_files(
        self,
        suggestion: FolderSuggestion,
        parent: Path,
        root: Path,
        dry_run: bool,
        operations: list[FileOperation],
        reserved: set[Path],
    ) -> None:
        folder = parent / suggestion.folder_name
        for item in suggestion.files:
            operation = self._place_file(item, suggestion, folder, root, dry_run, reserved)
            if operation is not None:
                operations.append(operation)
        for child in suggestion.subfolders:
            self._place_files(child, folder, root, dry_run, operations, reserved)

    def _place_file(
        self,
        item: FileItem,
        suggestion: FolderSuggestion,
        folder: Path,
        root: Path,
        dry_run: bool,
        reserved: set[Path],
    ) -> FileOperation | None:
        source = normalize(item.path if item.path.is_absolute() else root / item.path)
        suggested = suggestion.rename_for(item)
        destination = folder / (suggested or item.display_name)

        if destination == source:
            return None
        if not os.path.lexists(source):
            LOGGER.debug("Skipping %s: source no longer exists", source)
            return None

        if not dry_run:
            self._make_dirs(destination.parent)
        if os.path.lexists(destination) or destination in reserved:
            destination = unique_path(destination, reserved)
        if dry_run:
            reserved.add(destination)
        else:
            try:
                shutil.move(str(source), str(destination))
            except FileNotFoundError:
                LOGGER.debug("Skipping %s: source vanished during move", source)
                return None
            except OSError as exc:
                raise translate_os_error(exc, source) from exc

        if suggested is not None:
            return FileOperation(
                type=OperationType.RENAME_FILE,
                source_path=source,
                destination_path=destination,
                metadata=OperationMetadata(
                    original_filename=item.display_name,
                    new_filename=destination.name,
                    parent_folder=folder,
                ),
            )
        return FileOperation(
            type=OperationType.MOVE_FILE,
            source_path=source,
            destination_path=destination,
            metadata=OperationMetadata(parent_folder=folder),
        )

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _run(self, operations: list[FileOperation], step: Callable[[], None]) -> None:
        try:
            step()
        except FileSystemError as exc:
            exc.operations = list(operations)
            raise

    def _make_dirs(self, folder: Path) -> None:
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise translate_os_error(exc, folder) from exc

    def _check_depth(self, suggestions: Iterable[FolderSuggestion]) -> None:
        stack = [(suggestion, 1) for suggestion in suggestions]
        while stack:
            suggestion, depth = stack.pop()
            if depth > self._max_depth:
                raise InvalidPathError(
                    f"Folder '{suggestion.folder_name}' is nested deeper than "
                    f"{self._max_depth} levels"
                )
            stack.extend((child, depth + 1) for child in suggestion.subfolders)


def _check_component(name: str) -> None:
    if not name or name in {".", ".."} or "/" in name or (os.sep in name) or "\0" in name:
        raise InvalidPathError(f"Invalid file name: {name!r}")


__all__ = ["OperationExecutor", "DEFAULT_MAX_DEPTH"]
