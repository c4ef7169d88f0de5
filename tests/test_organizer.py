"""Tests for the organize/apply/undo workflow."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional, Sequence

import pytest
import yaml

from refiler.organization import (
    FileItem,
    FileSystemError,
    FolderSuggestion,
    ManagerRegistry,
    NoOperationToUndoError,
    OrganizationPlan,
    PlanValidationError,
)
from refiler.organizer import FolderOrganizer, OrganizationState, PlanFileProvider
from refiler.state import HistoryRepository, OrganizationStatus
from refiler.watch import WatchedFolder


class StaticProvider:
    """Place files by display name into fixed folders."""

    def __init__(self, layout: dict[str, list[str]]) -> None:
        self.layout = layout
        self.calls: list[tuple[Path, Optional[str], Optional[float]]] = []

    def generate(
        self,
        files: Sequence[FileItem],
        directory: Path,
        custom_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> OrganizationPlan:
        self.calls.append((directory, custom_prompt, temperature))
        by_name = {item.display_name: item for item in files}
        return OrganizationPlan(
            suggestions=[
                FolderSuggestion(
                    folder_name=folder,
                    files=[by_name[name] for name in names if name in by_name],
                )
                for folder, names in self.layout.items()
            ]
        )


@pytest.fixture
def tree(tmp_path: Path, touch) -> Path:
    root = tmp_path / "tree"
    touch(root / "a.txt", "a")
    touch(root / "b.jpg", "b")
    return root


@pytest.fixture
def history(tmp_path: Path) -> HistoryRepository:
    return HistoryRepository(tmp_path / "history.json")


def _organizer(history: HistoryRepository, provider=None, registry=None) -> FolderOrganizer:
    return FolderOrganizer(
        provider or StaticProvider({"Docs": ["a.txt"], "Images": ["b.jpg"]}),
        history=history,
        registry=registry,
    )


def test_organize_and_apply_records_history(tree: Path, history: HistoryRepository) -> None:
    organizer = _organizer(history)

    plan = organizer.organize(tree, custom_prompt="by type", temperature=0.3)
    assert organizer.state is OrganizationState.READY
    assert plan.total_files == 2

    operations = organizer.apply(tree)

    assert organizer.state is OrganizationState.COMPLETED
    assert (tree / "Docs" / "a.txt").exists()
    assert (tree / "Images" / "b.jpg").exists()
    entry = history.load()[0]
    assert entry.status is OrganizationStatus.COMPLETED
    assert entry.directory_path == str(tree)
    assert entry.files_organized == 2
    assert entry.folders_created == 2
    assert [operation.id for operation in entry.operations] == [operation.id for operation in operations]


def test_dry_run_apply_records_nothing(tree: Path, history: HistoryRepository) -> None:
    organizer = _organizer(history)
    organizer.organize(tree)

    operations = organizer.apply(dry_run=True)

    assert len(operations) == 4
    assert organizer.state is OrganizationState.READY
    assert history.load() == []
    assert (tree / "a.txt").exists()


def test_apply_without_plan_fails(history: HistoryRepository) -> None:
    with pytest.raises(FileSystemError):
        _organizer(history).apply()


def test_invalid_plan_moves_to_error_state(tree: Path, history: HistoryRepository) -> None:
    class EscapingProvider(StaticProvider):
        def generate(self, files, directory, custom_prompt=None, temperature=None):
            plan = super().generate(files, directory, custom_prompt, temperature)
            plan.suggestions[0].folder_name = "../outside"
            return plan

    organizer = _organizer(history, EscapingProvider({"Docs": ["a.txt"]}))

    with pytest.raises(PlanValidationError):
        organizer.organize(tree)

    assert organizer.state is OrganizationState.ERROR
    assert organizer.last_error
    assert organizer.current_plan is None


def test_failed_apply_is_recorded_with_partial_operations(
    tree: Path, history: HistoryRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    organizer = _organizer(history)
    organizer.organize(tree)
    real_move = shutil.move

    def _fail_on_images(src: str, dst: str) -> str:
        if "Images" in dst:
            raise PermissionError(13, "Permission denied", src)
        return real_move(src, dst)

    monkeypatch.setattr(shutil, "move", _fail_on_images)

    with pytest.raises(FileSystemError):
        organizer.apply()

    entry = history.load()[0]
    assert entry.status is OrganizationStatus.FAILED
    assert entry.error_message
    assert entry.can_undo
    assert organizer.state is OrganizationState.ERROR


def test_undo_last_uses_in_process_batch(tree: Path, history: HistoryRepository) -> None:
    organizer = _organizer(history)
    organizer.organize(tree)
    organizer.apply()

    organizer.undo_last(tree)

    assert (tree / "a.txt").exists() and (tree / "b.jpg").exists()
    assert not (tree / "Docs").exists()
    assert history.load()[0].is_undone


def test_undo_last_falls_back_to_history(tree: Path, history: HistoryRepository) -> None:
    first = _organizer(history)
    first.organize(tree)
    first.apply()

    fresh = _organizer(history, registry=ManagerRegistry())
    fresh.undo_last(tree)

    assert (tree / "a.txt").exists()
    assert history.load()[0].is_undone
    with pytest.raises(NoOperationToUndoError):
        fresh.undo_last(tree)


def test_restore_to_state_undoes_newer_batches(
    tree: Path, history: HistoryRepository, touch
) -> None:
    organizer = _organizer(history, StaticProvider({"Docs": ["a.txt"]}))
    organizer.organize(tree)
    organizer.apply()
    target = history.load()[0]

    for name, folder in (("b.jpg", "Images"), ("c.md", "Notes")):
        touch(tree / "c.md", "c")
        step = _organizer(history, StaticProvider({folder: [name]}), registry=organizer.registry)
        step.organize(tree)
        step.apply()

    results = organizer.restore_to_state(target.id)

    assert len(results) == 2
    assert (tree / "Docs" / "a.txt").exists()
    assert (tree / "b.jpg").exists()
    assert (tree / "c.md").exists()
    entries = {entry.id: entry for entry in history.load()}
    assert not entries[target.id].is_undone
    assert sum(entry.is_undone for entry in entries.values()) == 2


def test_regenerate_preview_bumps_version(tree: Path, history: HistoryRepository) -> None:
    provider = StaticProvider({"Docs": ["a.txt"]})
    organizer = _organizer(history, provider)
    organizer.organize(tree, custom_prompt="docs first")

    again = organizer.regenerate_preview()

    assert again.version == 2
    assert provider.calls[-1][1] == "docs first"


def test_reset_returns_to_idle(tree: Path, history: HistoryRepository) -> None:
    organizer = _organizer(history)
    organizer.organize(tree)

    organizer.reset()

    assert organizer.state is OrganizationState.IDLE
    assert organizer.current_plan is None
    assert organizer.directory is None


def test_rename_file_is_undoable_from_history(tree: Path, history: HistoryRepository) -> None:
    organizer = _organizer(history)

    organizer.rename_file(tree / "a.txt", "alpha.txt")

    assert (tree / "alpha.txt").exists()
    _organizer(history, registry=ManagerRegistry()).undo_last(tree)
    assert (tree / "a.txt").exists()


class TestHandleFolderChange:
    def test_applies_plan_file_for_folder(
        self, tree: Path, history: HistoryRepository, tmp_path: Path
    ) -> None:
        plan_path = tmp_path / "plan.yaml"
        plan_path.write_text(
            yaml.safe_dump({"folders": [{"name": "Docs", "files": ["a.txt"]}]}), encoding="utf-8"
        )
        organizer = FolderOrganizer(history=history)
        folder = WatchedFolder(path=str(tree), plan_file=str(plan_path))

        operations = organizer.handle_folder_change(folder)

        assert operations is not None and len(operations) == 2
        assert (tree / "Docs" / "a.txt").exists()
        assert organizer.handle_folder_change(folder) == []

    def test_skips_folder_under_reversal(self, tree: Path, history: HistoryRepository) -> None:
        organizer = _organizer(history)
        manager = organizer.registry.get(tree)

        with manager.guard.reverting([tree]):
            assert organizer.handle_folder_change(WatchedFolder(path=str(tree))) is None

        assert history.load() == []
        assert (tree / "a.txt").exists()

    def test_ignores_trigger_while_busy(self, tree: Path, history: HistoryRepository) -> None:
        nested: list[object] = []

        class ReentrantProvider(StaticProvider):
            def generate(self, files, directory, custom_prompt=None, temperature=None):
                nested.append(organizer.handle_folder_change(WatchedFolder(path=str(directory))))
                return super().generate(files, directory, custom_prompt, temperature)

        organizer = _organizer(history, ReentrantProvider({"Docs": ["a.txt"]}))
        organizer.organize(tree)

        assert nested == [None]

    def test_failures_are_logged_not_raised(
        self, tmp_path: Path, history: HistoryRepository, caplog: pytest.LogCaptureFixture
    ) -> None:
        organizer = FolderOrganizer(history=history)

        result = organizer.handle_folder_change(WatchedFolder(path=str(tmp_path / "gone")))

        assert result is None
        assert "Automatic organization" in caplog.text


def test_plan_file_provider_ignores_prompt(tree: Path, tmp_path: Path) -> None:
    plan_path = tmp_path / "plan.json"
    plan_path.write_text('{"folders": [{"name": "Docs", "files": ["a.txt"]}]}', encoding="utf-8")
    provider = PlanFileProvider(plan_path)

    plan = provider.generate(
        [FileItem.from_path(tree / "a.txt")], tree, custom_prompt="ignored", temperature=0.5
    )

    assert plan.suggestions[0].files[0].display_name == "a.txt"


def test_delete_file_moves_to_trash_and_stays_deleted_on_undo(
    tree: Path, history: HistoryRepository, tmp_path: Path
) -> None:
    organizer = FolderOrganizer(history=history, trash_dir=tmp_path / "trash")

    operation = organizer.delete_file(tree / "a.txt")

    assert operation.destination_path == tmp_path / "trash" / "a.txt"
    assert (tmp_path / "trash" / "a.txt").read_text() == "a"
    result = organizer.undo_last(tree)
    assert [item.id for item in result.irreversible] == [operation.id]
    assert not (tree / "a.txt").exists()
    assert history.load()[0].is_undone


def test_single_file_changes_join_the_owning_tree(tree: Path, history: HistoryRepository) -> None:
    organizer = _organizer(history)
    organizer.organize(tree)
    organizer.apply()

    organizer.rename_file(tree / "Docs" / "a.txt", "alpha.txt")

    assert organizer.registry.roots() == [tree]
    assert history.load()[0].directory_path == str(tree)
    organizer.undo_last(tree)
    assert (tree / "Docs" / "a.txt").exists()
    assert (tree / "Images" / "b.jpg").exists()
