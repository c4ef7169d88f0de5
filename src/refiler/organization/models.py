"""Organization plan data models."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class FileItem(BaseModel):
    """A scanned file.

    Attributes:
        id: Identity of the scanned file.
        path: Absolute path of the file.
        name: Base name without extension.
        extension: Extension without the leading dot.
        size: Size in bytes.
        is_directory: Always false for scanner output.
        creation_date: Creation timestamp when the platform reports one.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    path: Path
    name: str
    extension: str = ""
    size: int = 0
    is_directory: bool = False
    creation_date: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        """Return the file name including its extension."""
        if not self.extension:
            return self.name
        return f"{self.name}.{self.extension}"

    @classmethod
    def from_path(cls, path: Path) -> "FileItem":
        """Build an item for an existing file, reading its size and timestamps."""
        path = path.absolute()
        stat = path.stat()
        created = getattr(stat, "st_birthtime", None)
        return cls(
            path=path,
            name=path.stem if path.suffix else path.name,
            extension=path.suffix[1:] if path.suffix else "",
            size=stat.st_size,
            creation_date=(
                datetime.fromtimestamp(created, tz=timezone.utc) if created is not None else None
            ),
        )


class RenameMapping(BaseModel):
    """Suggested final name for one file of a folder suggestion."""

    original_file: FileItem
    suggested_name: str = ""

    @property
    def has_rename(self) -> bool:
        """Return whether applying the mapping changes the file name."""
        suggested = self.suggested_name.strip()
        return bool(suggested) and suggested != self.original_file.display_name


class FolderSuggestion(BaseModel):
    """A proposed folder with its files, renames and child folders."""

    id: UUID = Field(default_factory=uuid4)
    folder_name: str
    description: str = ""
    files: List[FileItem] = Field(default_factory=list)
    subfolders: List["FolderSuggestion"] = Field(default_factory=list)
    rename_mappings: List[RenameMapping] = Field(default_factory=list)
    reasoning: str = ""

    @property
    def total_file_count(self) -> int:
        """Return the number of files placed in this folder and its descendants."""
        return len(self.files) + sum(child.total_file_count for child in self.subfolders)

    def rename_for(self, item: FileItem) -> Optional[str]:
        """Return the suggested final name for ``item`` if a usable mapping exists."""
        for mapping in self.rename_mappings:
            original = mapping.original_file
            if original.id != item.id and original.path != item.path:
                continue
            if mapping.has_rename:
                return mapping.suggested_name.strip()
            return None
        return None


class OrganizationPlan(BaseModel):
    """Complete reorganization proposal consumed by the executor."""

    id: UUID = Field(default_factory=uuid4)
    suggestions: List[FolderSuggestion] = Field(default_factory=list)
    unorganized_files: List[FileItem] = Field(default_factory=list)
    notes: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 1

    @property
    def total_files(self) -> int:
        """Return placed plus unorganized files."""
        placed = sum(suggestion.total_file_count for suggestion in self.suggestions)
        return placed + len(self.unorganized_files)

    @property
    def total_folders(self) -> int:
        """Return the number of folder suggestions in the tree."""

        def _count(folders: List[FolderSuggestion]) -> int:
            return len(folders) + sum(_count(folder.subfolders) for folder in folders)

        return _count(self.suggestions)

    def iter_files(self) -> Iterator[tuple[FolderSuggestion, FileItem]]:
        """Yield every placed file with the suggestion that owns it."""
        stack = list(reversed(self.suggestions))
        while stack:
            suggestion = stack.pop()
            for item in suggestion.files:
                yield suggestion, item
            stack.extend(reversed(suggestion.subfolders))

    def all_files(self) -> list[FileItem]:
        """Return placed files followed by unorganized ones."""
        return [item for _, item in self.iter_files()] + list(self.unorganized_files)


FolderSuggestion.model_rebuild()


__all__ = ["FileItem", "RenameMapping", "FolderSuggestion", "OrganizationPlan"]
