"""Operation log entries describing filesystem mutations."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OperationType(str, Enum):
    """Kinds of mutations recorded in an operation log."""

    CREATE_FOLDER = "create_folder"
    MOVE_FILE = "move_file"
    RENAME_FILE = "rename_file"
    DELETE_FILE = "delete_file"
    COPY_FILE = "copy_file"


class OperationMetadata(BaseModel):
    """Optional details attached to an operation.

    Attributes:
        original_filename: File name before a rename.
        new_filename: File name after a rename.
        created_during_organization: Marks side-effect operations such as backups
            made while clearing a folder name.
        created_destination_folder: Set on copies whose target folder did not exist
            before the copy, so undoing the copy may remove it.
        parent_folder: Folder the operation was performed in.
    """

    model_config = ConfigDict(frozen=True)

    original_filename: Optional[str] = None
    new_filename: Optional[str] = None
    created_during_organization: bool = False
    created_destination_folder: bool = False
    parent_folder: Optional[Path] = None


class FileOperation(BaseModel):
    """Immutable record of one filesystem mutation.

    Attributes:
        id: Unique identifier of the entry.
        type: Mutation kind.
        source_path: Path the mutation started from (the folder for creations).
        destination_path: Path the mutation ended at, when applicable.
        timestamp: Time the entry was recorded.
        metadata: Optional rename/backup details.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    type: OperationType
    source_path: Path
    destination_path: Optional[Path] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[OperationMetadata] = None

    @model_validator(mode="after")
    def _check_destination(self) -> "FileOperation":
        needs_destination = {
            OperationType.MOVE_FILE,
            OperationType.RENAME_FILE,
            OperationType.COPY_FILE,
        }
        if self.type in needs_destination and self.destination_path is None:
            raise ValueError(f"{self.type.value} operations require a destination path")
        if self.type is OperationType.CREATE_FOLDER and self.destination_path is not None:
            raise ValueError("create_folder operations do not carry a destination path")
        return self

    @property
    def is_file_relocation(self) -> bool:
        """Return whether the entry moved a file that reversal can move back."""
        return self.type in {OperationType.MOVE_FILE, OperationType.RENAME_FILE}

    def touched_paths(self) -> list[Path]:
        """Return every path referenced by the entry."""
        paths = [self.source_path]
        if self.destination_path is not None:
            paths.append(self.destination_path)
        return paths


def summarize(operations: list[FileOperation]) -> dict[str, int]:
    """Count operations per type, using the enum values as keys."""
    counts = {operation_type.value: 0 for operation_type in OperationType}
    for operation in operations:
        counts[operation.type.value] += 1
    return counts


__all__ = ["OperationType", "OperationMetadata", "FileOperation", "summarize"]
