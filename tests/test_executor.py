"""Tests for plan execution and single-file operations."""

from __future__ import annotations

from pathlib import Path

import pytest

from refiler.organization import (
    InvalidPathError,
    OperationExecutor,
    OperationType,
    PathAlreadyExistsError,
    PathNotFoundError,
)


def test_already_organized_plan_is_a_no_op(tmp_path: Path, touch, suggestion, plan) -> None:
    existing = touch(tmp_path / "Docs" / "a.txt")

    operations = OperationExecutor().apply(plan(suggestion("Docs", [existing])), tmp_path)

    assert operations == []
    assert existing.read_text() == "data"


def test_conflicting_destination_gets_counter_suffix(
    tmp_path: Path, touch, suggestion, plan
) -> None:
    loose = touch(tmp_path / "test.txt", "new")
    touch(tmp_path / "Docs" / "test.txt", "old")

    operations = OperationExecutor().apply(plan(suggestion("Docs", [loose])), tmp_path)

    assert len(operations) == 1
    operation = operations[0]
    assert operation.type is OperationType.MOVE_FILE
    assert operation.source_path == tmp_path / "test.txt"
    assert operation.destination_path == tmp_path / "Docs" / "test_1.txt"
    assert (tmp_path / "Docs" / "test.txt").read_text() == "old"
    assert (tmp_path / "Docs" / "test_1.txt").read_text() == "new"


def test_file_occupying_folder_name_is_backed_up(tmp_path: Path, touch, suggestion, plan) -> None:
    touch(tmp_path / "Documents", "i am a file")
    item = touch(tmp_path / "a.txt")

    operations = OperationExecutor().apply(plan(suggestion("Documents", [item])), tmp_path)

    kinds = [operation.type for operation in operations]
    assert kinds == [OperationType.MOVE_FILE, OperationType.CREATE_FOLDER, OperationType.MOVE_FILE]
    backup = operations[0]
    assert backup.source_path == tmp_path / "Documents"
    assert backup.destination_path is not None
    assert backup.destination_path.name.startswith("Documents_file_backup_")
    assert backup.metadata is not None and backup.metadata.created_during_organization
    assert backup.destination_path.read_text() == "i am a file"
    assert (tmp_path / "Documents").is_dir()
    assert (tmp_path / "Documents" / "a.txt").exists()


def test_rename_mapping_records_rename_operation(tmp_path: Path, touch, suggestion, plan) -> None:
    report = touch(tmp_path / "report.pdf")

    operations = OperationExecutor().apply(
        plan(suggestion("Finance", [report], renames={"report.pdf": "Q3.pdf"})), tmp_path
    )

    rename = operations[-1]
    assert rename.type is OperationType.RENAME_FILE
    assert rename.destination_path == tmp_path / "Finance" / "Q3.pdf"
    assert rename.metadata is not None
    assert rename.metadata.original_filename == "report.pdf"
    assert rename.metadata.new_filename == "Q3.pdf"
    assert (tmp_path / "Finance" / "Q3.pdf").exists()
    assert not report.exists()


def test_folders_are_created_before_any_file_moves(
    tmp_path: Path, touch, suggestion, plan
) -> None:
    a = touch(tmp_path / "a.txt")
    b = touch(tmp_path / "b.jpg")
    nested = suggestion("Media", [b], subfolders=[suggestion("Raw")])

    operations = OperationExecutor().apply(plan(suggestion("Docs", [a]), nested), tmp_path)

    kinds = [operation.type for operation in operations]
    first_move = kinds.index(OperationType.MOVE_FILE)
    assert all(kind is OperationType.CREATE_FOLDER for kind in kinds[:first_move])
    assert OperationType.CREATE_FOLDER not in kinds[first_move:]
    created = [operation.source_path for operation in operations[:first_move]]
    assert created == [tmp_path / "Docs", tmp_path / "Media", tmp_path / "Media" / "Raw"]


def test_dry_run_leaves_disk_untouched_and_reserves_names(
    tmp_path: Path, touch, suggestion, plan
) -> None:
    first = touch(tmp_path / "one" / "notes.txt", "1")
    second = touch(tmp_path / "two" / "notes.txt", "2")

    operations = OperationExecutor().apply(
        plan(suggestion("Notes", [first, second])), tmp_path, dry_run=True
    )

    destinations = [operation.destination_path for operation in operations if operation.destination_path]
    assert destinations == [tmp_path / "Notes" / "notes.txt", tmp_path / "Notes" / "notes_1.txt"]
    assert not (tmp_path / "Notes").exists()
    assert first.exists() and second.exists()


def test_missing_source_is_skipped(tmp_path: Path, touch, suggestion, plan) -> None:
    present = touch(tmp_path / "here.txt")
    gone = touch(tmp_path / "gone.txt")
    organization = plan(suggestion("Docs", [present, gone]))
    gone.unlink()

    operations = OperationExecutor().apply(organization, tmp_path)

    moved = [operation.source_path for operation in operations if operation.is_file_relocation]
    assert moved == [tmp_path / "here.txt"]


def test_plan_deeper_than_limit_is_rejected(tmp_path: Path, suggestion, plan) -> None:
    deepest = suggestion("c")
    tree = suggestion("a", subfolders=[suggestion("b", subfolders=[deepest])])

    with pytest.raises(InvalidPathError) as excinfo:
        OperationExecutor(max_depth=2).apply(plan(tree), tmp_path)

    assert excinfo.value.operations == []
    assert not (tmp_path / "a").exists()


class TestSingleFileOperations:
    def test_rename_refuses_to_overwrite(self, tmp_path: Path, touch) -> None:
        source = touch(tmp_path / "a.txt")
        touch(tmp_path / "b.txt")

        with pytest.raises(PathAlreadyExistsError):
            OperationExecutor().rename_file(source, "b.txt")
        assert source.exists()

    def test_rename_rejects_path_like_names(self, tmp_path: Path, touch) -> None:
        source = touch(tmp_path / "a.txt")

        for name in ("", "..", "x/y.txt"):
            with pytest.raises(InvalidPathError):
                OperationExecutor().rename_file(source, name)

    def test_rename_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(PathNotFoundError):
            OperationExecutor().rename_file(tmp_path / "nope.txt", "x.txt")

    def test_rename_moves_file_and_records_names(self, tmp_path: Path, touch) -> None:
        source = touch(tmp_path / "a.txt")

        operation = OperationExecutor().rename_file(source, "renamed.txt")

        assert operation.type is OperationType.RENAME_FILE
        assert operation.destination_path == tmp_path / "renamed.txt"
        assert (tmp_path / "renamed.txt").exists()
        assert not source.exists()

    def test_copy_uses_unique_name(self, tmp_path: Path, touch) -> None:
        source = touch(tmp_path / "a.txt", "copy me")
        touch(tmp_path / "backup" / "a.txt", "other")

        operation = OperationExecutor().copy_file(source, tmp_path / "backup")

        assert operation.type is OperationType.COPY_FILE
        assert operation.destination_path == tmp_path / "backup" / "a_1.txt"
        assert operation.destination_path.read_text() == "copy me"
        assert source.exists()

    def test_delete_into_trash_records_location(self, tmp_path: Path, touch) -> None:
        source = touch(tmp_path / "a.txt")

        operation = OperationExecutor().delete_file(source, trash_dir=tmp_path / ".trash")

        assert operation.type is OperationType.DELETE_FILE
        assert operation.destination_path == tmp_path / ".trash" / "a.txt"
        assert operation.destination_path.exists()
        assert not source.exists()

    def test_delete_without_trash_unlinks(self, tmp_path: Path, touch) -> None:
        source = touch(tmp_path / "a.txt")

        operation = OperationExecutor().delete_file(source)

        assert operation.destination_path is None
        assert not source.exists()
