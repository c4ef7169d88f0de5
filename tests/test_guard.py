"""Tests for the revert guard and its use during reversal."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from refiler.organization import FileSystemManager, PermissionDeniedError, RevertGuard


def test_guard_matches_marked_path_and_descendants(tmp_path: Path) -> None:
    guard = RevertGuard()
    guard.mark_paths_as_reverting([tmp_path / "dir"])

    assert guard.is_path_being_reverted(tmp_path / "dir")
    assert guard.is_path_being_reverted(tmp_path / "dir" / "Downloads" / "x.txt")
    assert not guard.is_path_being_reverted(tmp_path)
    assert not guard.is_path_being_reverted(tmp_path / "dir2")


def test_guard_marks_are_counted(tmp_path: Path) -> None:
    guard = RevertGuard()
    target = tmp_path / "shared"

    guard.mark_paths_as_reverting([target])
    guard.mark_paths_as_reverting([target])
    guard.clear_revert_marks([target])

    assert guard.is_path_being_reverted(target)

    guard.clear_revert_marks([target])

    assert not guard.is_path_being_reverted(target)
    assert guard.active_paths == []


def test_reverting_context_clears_marks_on_error(tmp_path: Path) -> None:
    guard = RevertGuard()

    with pytest.raises(RuntimeError):
        with guard.reverting([tmp_path]):
            assert guard.is_path_being_reverted(tmp_path / "child")
            raise RuntimeError("boom")

    assert not guard.is_path_being_reverted(tmp_path / "child")


def test_watched_subfolder_is_guarded_only_during_reversal(
    tmp_path: Path, touch, suggestion, plan, monkeypatch: pytest.MonkeyPatch
) -> None:
    downloads = tmp_path / "dir" / "Downloads"
    item = touch(downloads / "x.pdf")
    manager = FileSystemManager(tmp_path / "dir")
    operations = manager.apply_organization(plan(suggestion("Docs", [item])))

    observed: list[bool] = []
    real_move = shutil.move

    def _recording_move(src: str, dst: str) -> str:
        observed.append(manager.is_path_being_reverted(downloads))
        return real_move(src, dst)

    monkeypatch.setattr(shutil, "move", _recording_move)

    assert not manager.is_path_being_reverted(downloads)
    manager.reverse_operations(operations)

    assert observed == [True]
    assert not manager.is_path_being_reverted(downloads)
    assert item.exists()


def test_guard_is_released_when_reversal_fails(
    tmp_path: Path, touch, suggestion, plan, monkeypatch: pytest.MonkeyPatch
) -> None:
    item = touch(tmp_path / "a.txt")
    manager = FileSystemManager(tmp_path)
    manager.apply_organization(plan(suggestion("Docs", [item])))

    def _failing_move(src: str, dst: str) -> str:
        raise PermissionError(13, "Permission denied", src)

    monkeypatch.setattr(shutil, "move", _failing_move)

    with pytest.raises(PermissionDeniedError):
        manager.undo_last_operation()

    assert manager.guard.active_paths == []
    assert manager.undo_depth == 1


def test_top_level_reversal_marks_the_tree_root(
    tmp_path: Path, touch, suggestion, plan, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = tmp_path / "tree"
    item = touch(root / "a.txt")
    manager = FileSystemManager(root)
    operations = manager.apply_organization(plan(suggestion("Docs", [item])))

    observed: list[tuple[bool, bool]] = []
    real_move = shutil.move

    def _recording_move(src: str, dst: str) -> str:
        observed.append(
            (manager.is_path_being_reverted(root), manager.is_path_being_reverted(tmp_path / "other"))
        )
        return real_move(src, dst)

    monkeypatch.setattr(shutil, "move", _recording_move)
    manager.reverse_operations(operations)

    assert observed == [(True, False)]
    assert not manager.is_path_being_reverted(root)
