"""Scan, plan, apply and undo sequencing for one directory at a time."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, Sequence
from uuid import UUID

from refiler.organization import (
    FileItem,
    FileOperation,
    FileSystemError,
    FileSystemManager,
    ManagerRegistry,
    NoOperationToUndoError,
    OrganizationPlan,
    PathNotFoundError,
    ReversalResult,
    RevertInProgressError,
    validate_plan,
)
from refiler.organization.executor import DEFAULT_MAX_DEPTH
from refiler.organization.operations import OperationType, summarize
from refiler.organization.paths import normalize
from refiler.organization.plan_io import load_plan_file
from refiler.scanning import DirectoryScanner, ExclusionRule, default_rules, filter_files
from refiler.state import HistoryRepository, OrganizationHistoryEntry, OrganizationStatus
from refiler.watch.models import WatchedFolder

LOGGER = logging.getLogger(__name__)


class OrganizationState(str, Enum):
    """Progress of the organizer through one organize/apply cycle."""

    IDLE = "idle"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    READY = "ready"
    APPLYING = "applying"
    COMPLETED = "completed"
    ERROR = "error"


class PlanProvider(Protocol):
    """Produces an organization plan for scanned files."""

    def generate(
        self,
        files: Sequence[FileItem],
        directory: Path,
        custom_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> OrganizationPlan:
        ...


class PlanFileProvider:
    """Plan provider that reads a YAML or JSON plan document."""

    def __init__(self, plan_path: Path) -> None:
        self._plan_path = plan_path.expanduser()

    @property
    def plan_path(self) -> Path:
        return self._plan_path

    def generate(
        self,
        files: Sequence[FileItem],
        directory: Path,
        custom_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> OrganizationPlan:
        if custom_prompt or temperature is not None:
            LOGGER.debug("Plan file provider ignores prompt and temperature overrides.")
        return load_plan_file(self._plan_path, directory, files)


class FolderOrganizer:
    """Drive one directory from scan to applied plan, recording history.

    The organizer handles one cycle at a time. Watcher triggers that arrive
    while a cycle is running are dropped.
    """

    def __init__(
        self,
        provider: Optional[PlanProvider] = None,
        *,
        registry: Optional[ManagerRegistry] = None,
        history: Optional[HistoryRepository] = None,
        scanner: Optional[DirectoryScanner] = None,
        exclusions: Optional[Sequence[ExclusionRule]] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        trash_dir: Optional[Path] = None,
    ) -> None:
        """Initialize the organizer.

        Args:
            provider: Default plan provider; watched folders with a ``plan_file``
                use their own document instead.
            registry: Managers owning each organized tree.
            history: Repository receiving one entry per applied batch.
            scanner: Directory scanner; hidden files are skipped by default.
            exclusions: Rules removing scanned files before planning.
            max_depth: Deepest folder nesting accepted from a plan.
            trash_dir: Folder receiving deleted files; deletes are permanent when unset.
        """
        self._provider = provider
        self._registry = registry or ManagerRegistry(max_depth=max_depth)
        self._history = history or HistoryRepository()
        self._scanner = scanner or DirectoryScanner()
        self._exclusions = list(default_rules() if exclusions is None else exclusions)
        self._max_depth = max_depth
        self._trash_dir = trash_dir
        self._busy = threading.Lock()
        self._state = OrganizationState.IDLE
        self._directory: Optional[Path] = None
        self._files: list[FileItem] = []
        self._plan: Optional[OrganizationPlan] = None
        self._active_provider: Optional[PlanProvider] = provider
        self._custom_prompt: Optional[str] = None
        self._temperature: Optional[float] = None
        self._last_error: Optional[str] = None

    @property
    def state(self) -> OrganizationState:
        return self._state

    @property
    def current_plan(self) -> Optional[OrganizationPlan]:
        return self._plan

    @property
    def directory(self) -> Optional[Path]:
        return self._directory

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def registry(self) -> ManagerRegistry:
        return self._registry

    @property
    def history(self) -> HistoryRepository:
        return self._history

    def is_path_being_reverted(self, path: Path) -> bool:
        return self._registry.is_path_being_reverted(path)

    # ------------------------------------------------------------------ #
    # Organize                                                           #
    # ------------------------------------------------------------------ #

    def organize(
        self,
        directory: Path,
        custom_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        *,
        provider: Optional[PlanProvider] = None,
    ) -> OrganizationPlan:
        """Scan ``directory`` and ask the provider for a validated plan.

        Raises:
            PathNotFoundError: If ``directory`` is not a directory.
            RevertInProgressError: If the directory is being reverted.
            PlanValidationError: If the plan does not fit the directory.
        """
        with self._busy:
            return self._organize(directory, custom_prompt, temperature, provider)

    def regenerate_preview(self) -> OrganizationPlan:
        """Ask the provider again for the current directory and bump the plan version."""
        with self._busy:
            if self._directory is None or self._plan is None:
                raise FileSystemError("Nothing has been organized yet.")
            previous_version = self._plan.version
            plan = self._organize(
                self._directory, self._custom_prompt, self._temperature, self._active_provider
            )
            self._plan = plan.model_copy(update={"version": previous_version + 1})
            return self._plan

    def apply(self, directory: Optional[Path] = None, dry_run: bool = False) -> list[FileOperation]:
        """Apply the current plan and record the batch in history.

        Args:
            directory: Directory the plan was built for; defaults to the organized one.
            dry_run: Return the would-be operations without touching the disk.

        Returns:
            list[FileOperation]: Operations in creation order.

        Raises:
            FileSystemError: If no plan is ready or the batch fails. Failed batches
                are recorded in history with the operations they performed.
        """
        with self._busy:
            return self._apply(directory, dry_run)

    def rename_file(self, path: Path, new_name: str, dry_run: bool = False) -> FileOperation:
        """Rename one file in place and record it as its own history entry.

        Raises:
            PathAlreadyExistsError: If ``new_name`` is already taken.
        """
        source = normalize(path.expanduser())
        with self._busy:
            manager = self._owning_manager(source)
            operation = manager.rename_file(source, new_name, dry_run)
            if not dry_run:
                self._record(manager.root, None, [operation], OrganizationStatus.COMPLETED, None)
            return operation

    def delete_file(self, path: Path, dry_run: bool = False) -> FileOperation:
        """Delete one file, or move it to the trash folder, and record the change.

        Undoing the entry later only warns: deletions are never restored.
        """
        source = normalize(path.expanduser())
        with self._busy:
            manager = self._owning_manager(source)
            operation = manager.delete_file(source, self._trash_dir, dry_run)
            if not dry_run:
                self._record(manager.root, None, [operation], OrganizationStatus.COMPLETED, None)
            return operation

    # ------------------------------------------------------------------ #
    # Undo                                                               #
    # ------------------------------------------------------------------ #

    def undo_last(self, directory: Path) -> ReversalResult:
        """Reverse the most recent batch applied to ``directory``.

        Batches applied by this process are taken from the manager's undo stack;
        otherwise the newest undoable history entry for the directory is used.

        Raises:
            NoOperationToUndoError: If there is nothing left to undo.
        """
        root = normalize(directory)
        manager = self._registry.get(root)
        batches = manager.undo_batches()
        if batches:
            batch_ids = {operation.id for operation in batches[-1]}
            result = manager.undo_last_operation()
            self._mark_undone(root, batch_ids)
            return result
        for entry in self._history.entries_for(root):
            if entry.can_undo:
                return self.undo_history_entry(entry.id)
        raise NoOperationToUndoError(f"No operation to undo in {root}", path=root)

    def undo_history_entry(self, entry_id: UUID) -> ReversalResult:
        """Reverse the operations of one history entry and mark it undone."""
        entry = self._history.get(entry_id)
        if not entry.can_undo:
            raise NoOperationToUndoError(f"History entry {entry_id} cannot be undone")
        manager = self._registry.get(Path(entry.directory_path))
        result = manager.reverse_operations(entry.operations)
        self._history.update_entry(
            entry_id, lambda current: current.model_copy(update={"is_undone": True})
        )
        LOGGER.info("Undid history entry %s in %s", entry_id, entry.directory_path)
        return result

    def restore_to_state(self, entry_id: UUID) -> list[ReversalResult]:
        """Undo every later completed batch for the entry's directory, newest first."""
        target = self._history.get(entry_id)
        newer = [
            entry
            for entry in self._history.entries_for(target.directory_path)
            if entry.timestamp > target.timestamp and entry.success and entry.can_undo
        ]
        newer.sort(key=lambda entry: entry.timestamp, reverse=True)
        return [self.undo_history_entry(entry.id) for entry in newer]

    # ------------------------------------------------------------------ #
    # Watcher                                                            #
    # ------------------------------------------------------------------ #

    def handle_folder_change(self, folder: WatchedFolder) -> Optional[list[FileOperation]]:
        """Organize and apply ``folder`` after the watcher saw it change.

        Never raises. Returns ``None`` when the trigger was dropped or failed and
        an empty list when the folder needed no changes.
        """
        if not self._busy.acquire(blocking=False):
            LOGGER.info("Organizer busy; ignoring change in %s", folder.path)
            return None
        try:
            provider = PlanFileProvider(Path(folder.plan_file)) if folder.plan_file else None
            self._organize(folder.directory, folder.custom_prompt, folder.temperature, provider)
            return self._apply(folder.directory, dry_run=False)
        except RevertInProgressError:
            LOGGER.info("Skipping %s while it is being reverted.", folder.path)
            return None
        except Exception:  # noqa: BLE001
            LOGGER.exception("Automatic organization of %s failed.", folder.path)
            return None
        finally:
            self._busy.release()

    def reset(self) -> None:
        """Forget the current directory, files and plan."""
        self._state = OrganizationState.IDLE
        self._directory = None
        self._files = []
        self._plan = None
        self._active_provider = self._provider
        self._custom_prompt = None
        self._temperature = None
        self._last_error = None

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _organize(
        self,
        directory: Path,
        custom_prompt: Optional[str],
        temperature: Optional[float],
        provider: Optional[PlanProvider],
    ) -> OrganizationPlan:
        root = normalize(directory.expanduser())
        active = provider or self._provider
        try:
            if self._registry.is_path_being_reverted(root):
                raise RevertInProgressError(f"{root} is being reverted", path=root)
            if not root.is_dir():
                raise PathNotFoundError(f"Directory does not exist: {root}", path=root)
            if active is None:
                raise FileSystemError("No plan provider configured.", path=root)

            self._state = OrganizationState.SCANNING
            files = filter_files(self._scanner.scan(root), self._exclusions)
            LOGGER.debug("Scanned %d file(s) in %s", len(files), root)

            self._state = OrganizationState.ANALYZING
            plan = active.generate(files, root, custom_prompt, temperature)
            validate_plan(plan, root, max_depth=self._max_depth)
        except Exception as exc:
            self._fail(exc)
            raise

        self._directory = root
        self._files = files
        self._plan = plan
        self._active_provider = active
        self._custom_prompt = custom_prompt
        self._temperature = temperature
        self._last_error = None
        self._state = OrganizationState.READY
        return plan

    def _apply(self, directory: Optional[Path], dry_run: bool) -> list[FileOperation]:
        if self._plan is None or self._directory is None:
            raise FileSystemError("No plan is ready to apply.")
        root = self._directory
        if directory is not None and normalize(directory.expanduser()) != root:
            raise FileSystemError(f"The current plan was built for {root}", path=root)

        plan = self._plan
        manager = self._registry.get(root)
        self._state = OrganizationState.APPLYING
        try:
            operations = manager.apply_organization(plan, root, dry_run=dry_run)
        except FileSystemError as exc:
            self._fail(exc)
            if not dry_run:
                self._record(root, plan, exc.operations, OrganizationStatus.FAILED, str(exc))
            raise

        if dry_run:
            self._state = OrganizationState.READY
            return operations

        self._state = OrganizationState.COMPLETED
        if not operations:
            LOGGER.debug("Nothing to change in %s", root)
            return operations

        self._record(root, plan, operations, OrganizationStatus.COMPLETED, None)
        LOGGER.info("Applied %d operation(s) in %s", len(operations), root)
        return operations

    def _record(
        self,
        root: Path,
        plan: Optional[OrganizationPlan],
        operations: Sequence[FileOperation],
        status: OrganizationStatus,
        error_message: Optional[str],
    ) -> None:
        counts = summarize(list(operations))
        if plan is not None:
            files_organized = plan.total_files
        else:
            files_organized = sum(1 for operation in operations if operation.is_file_relocation)
        self._history.add_entry(
            OrganizationHistoryEntry(
                directory_path=str(root),
                files_organized=files_organized,
                folders_created=counts[OperationType.CREATE_FOLDER.value],
                plan=plan,
                status=status,
                error_message=error_message,
                operations=list(operations),
            )
        )

    def _owning_manager(self, path: Path) -> FileSystemManager:
        # Single-file changes join the tree that already manages the file.
        return self._registry.manager_for(path) or self._registry.get(path.parent)

    def _mark_undone(self, root: Path, operation_ids: set[UUID]) -> None:
        for entry in self._history.entries_for(root):
            if entry.is_undone:
                continue
            if operation_ids & {operation.id for operation in entry.operations}:
                self._history.update_entry(
                    entry.id, lambda current: current.model_copy(update={"is_undone": True})
                )
                return

    def _fail(self, exc: Exception) -> None:
        self._state = OrganizationState.ERROR
        self._last_error = str(exc)


__all__ = ["FolderOrganizer", "OrganizationState", "PlanProvider", "PlanFileProvider"]
