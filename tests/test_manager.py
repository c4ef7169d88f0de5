"""Tests for per-tree managers and the manager registry."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from refiler.organization import (
    FileSystemError,
    FileSystemManager,
    ManagerRegistry,
    NoOperationToUndoError,
    OperationType,
)


def test_undo_with_empty_stack_raises(tmp_path: Path) -> None:
    with pytest.raises(NoOperationToUndoError):
        FileSystemManager(tmp_path).undo_last_operation()


def test_dry_run_and_empty_batches_are_not_recorded(
    tmp_path: Path, touch, suggestion, plan
) -> None:
    item = touch(tmp_path / "Docs" / "a.txt")
    loose = touch(tmp_path / "b.txt")
    manager = FileSystemManager(tmp_path)

    manager.apply_organization(plan(suggestion("Docs", [item])))
    manager.apply_organization(plan(suggestion("Other", [loose])), dry_run=True)

    assert manager.undo_depth == 0


def test_phases_can_run_as_separate_batches(tmp_path: Path, touch, suggestion, plan) -> None:
    item = touch(tmp_path / "a.txt")
    organization = plan(suggestion("Docs", [item]))
    manager = FileSystemManager(tmp_path)

    folders = manager.create_folders(organization)
    files = manager.move_files(organization)

    assert [operation.type for operation in folders] == [OperationType.CREATE_FOLDER]
    assert [operation.type for operation in files] == [OperationType.MOVE_FILE]
    assert manager.undo_depth == 2

    manager.undo_last_operation()
    assert item.exists()
    assert not (tmp_path / "Docs").exists()

    manager.undo_last_operation()
    assert manager.undo_depth == 0


def test_reverse_operations_drops_batch_from_stack(
    tmp_path: Path, touch, suggestion, plan
) -> None:
    first = touch(tmp_path / "a.txt")
    second = touch(tmp_path / "b.txt")
    manager = FileSystemManager(tmp_path)
    older = manager.apply_organization(plan(suggestion("A", [first])))
    manager.apply_organization(plan(suggestion("B", [second])))

    manager.reverse_operations(older)

    batches = manager.undo_batches()
    assert len(batches) == 1
    assert batches[0][-1].source_path == tmp_path / "b.txt"
    assert first.exists()


def test_aborted_batch_keeps_partial_log(
    tmp_path: Path, touch, suggestion, plan, monkeypatch: pytest.MonkeyPatch
) -> None:
    a = touch(tmp_path / "a.txt")
    b = touch(tmp_path / "b.txt")
    manager = FileSystemManager(tmp_path)
    real_move = shutil.move
    calls: list[str] = []

    def _flaky_move(src: str, dst: str) -> str:
        calls.append(src)
        if len(calls) == 2:
            raise PermissionError(13, "Permission denied", src)
        return real_move(src, dst)

    monkeypatch.setattr(shutil, "move", _flaky_move)

    with pytest.raises(FileSystemError) as excinfo:
        manager.apply_organization(plan(suggestion("Docs", [a, b])))

    partial = excinfo.value.operations
    assert [operation.type for operation in partial] == [
        OperationType.CREATE_FOLDER,
        OperationType.MOVE_FILE,
    ]
    assert manager.undo_depth == 1

    monkeypatch.setattr(shutil, "move", real_move)
    manager.undo_last_operation()

    assert a.exists() and b.exists()
    assert not (tmp_path / "Docs").exists()


def test_base_directory_outside_tree_is_rejected(tmp_path: Path, plan) -> None:
    manager = FileSystemManager(tmp_path / "tree")

    with pytest.raises(FileSystemError):
        manager.apply_organization(plan(), base_directory=tmp_path / "elsewhere")


def test_single_file_operations_are_individual_batches(tmp_path: Path, touch) -> None:
    source = touch(tmp_path / "a.txt")
    manager = FileSystemManager(tmp_path)

    manager.rename_file(source, "b.txt")
    manager.copy_file(tmp_path / "b.txt", tmp_path / "copies")

    assert manager.undo_depth == 2
    manager.undo_last_operation()
    manager.undo_last_operation()
    assert source.exists()
    assert not (tmp_path / "b.txt").exists()


class TestManagerRegistry:
    def test_get_returns_same_manager_per_root(self, tmp_path: Path) -> None:
        registry = ManagerRegistry()

        assert registry.get(tmp_path / "a") is registry.get(tmp_path / "a" / ".")
        assert registry.get(tmp_path / "a") is not registry.get(tmp_path / "b")
        assert registry.roots() == [tmp_path / "a", tmp_path / "b"]

    def test_manager_for_prefers_deepest_root(self, tmp_path: Path) -> None:
        registry = ManagerRegistry()
        outer = registry.get(tmp_path)
        inner = registry.get(tmp_path / "inner")

        assert registry.manager_for(tmp_path / "inner" / "x.txt") is inner
        assert registry.manager_for(tmp_path / "other.txt") is outer
        assert registry.manager_for(tmp_path.parent / "unrelated") is None

    def test_revert_check_spans_all_trees(self, tmp_path: Path) -> None:
        registry = ManagerRegistry()
        manager = registry.get(tmp_path / "tree")

        with manager.guard.reverting([tmp_path / "tree" / "Docs"]):
            assert registry.is_path_being_reverted(tmp_path / "tree" / "Docs" / "a.txt")
            assert not registry.is_path_being_reverted(tmp_path / "tree" / "Other")

        assert not registry.is_path_being_reverted(tmp_path / "tree" / "Docs")
