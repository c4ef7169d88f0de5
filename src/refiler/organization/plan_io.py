"""Reading plan documents produced outside the engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import PlanValidationError
from .models import FileItem, FolderSuggestion, OrganizationPlan, RenameMapping
from .paths import normalize


class _DocumentModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UnorganizedEntry(_DocumentModel):
    """A file the planner chose not to place."""

    filename: str
    reason: str = ""


class FolderEntry(_DocumentModel):
    """One folder of a plan document.

    Attributes:
        name: Folder name created under its parent.
        description: Short description of the folder's purpose.
        reasoning: Why the planner grouped these files.
        files: File names or paths relative to the organized directory.
        renames: Mapping of original file name to suggested final name.
        subfolders: Nested folders.
    """

    name: str
    description: str = ""
    reasoning: Optional[str] = None
    files: List[str] = Field(default_factory=list)
    renames: dict[str, str] = Field(default_factory=dict)
    subfolders: List["FolderEntry"] = Field(default_factory=list)


class PlanDocument(_DocumentModel):
    """Serialized plan as written by a planner (YAML or JSON)."""

    folders: List[FolderEntry] = Field(default_factory=list)
    unorganized: List[Union[str, UnorganizedEntry]] = Field(default_factory=list)
    notes: str = ""
    version: int = 1


FolderEntry.model_rebuild()


def parse_plan_document(
    data: Any,
    directory: Path,
    files: Iterable[FileItem],
) -> OrganizationPlan:
    """Convert a decoded plan document into an :class:`OrganizationPlan`.

    File references are matched against the scanned ``files`` by path relative
    to ``directory`` first, then by display name, then by bare name.

    Raises:
        PlanValidationError: If the document is malformed or names unknown files.
    """

    try:
        document = PlanDocument.model_validate(data or {})
    except ValidationError as exc:
        raise PlanValidationError(f"Malformed plan document: {exc}") from exc

    lookup = _FileLookup(directory, files)
    suggestions = [_convert(folder, lookup) for folder in document.folders]
    unorganized = [
        lookup.resolve(entry if isinstance(entry, str) else entry.filename)
        for entry in document.unorganized
    ]
    if lookup.missing:
        raise PlanValidationError(
            "Plan references unknown files: " + ", ".join(sorted(set(lookup.missing)))
        )

    return OrganizationPlan(
        suggestions=suggestions,
        unorganized_files=[item for item in unorganized if item is not None],
        notes=document.notes,
        version=document.version,
    )


def load_plan_file(path: Path, directory: Path, files: Iterable[FileItem]) -> OrganizationPlan:
    """Read a YAML or JSON plan document from ``path``."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise PlanValidationError(f"Unable to read plan file {path}: {exc}", path=path) from exc
    except yaml.YAMLError as exc:
        raise PlanValidationError(f"Failed to parse plan file {path}: {exc}", path=path) from exc
    if raw is not None and not isinstance(raw, dict):
        raise PlanValidationError("Plan file must contain a mapping at the top level.", path=path)
    return parse_plan_document(raw, directory, files)


def dump_plan_document(plan: OrganizationPlan, directory: Path) -> dict[str, Any]:
    """Render ``plan`` back into the document format, relative to ``directory``."""
    root = normalize(directory)

    def _name(item: FileItem) -> str:
        try:
            return normalize(item.path).relative_to(root).as_posix()
        except ValueError:
            return item.path.as_posix()

    def _folder(suggestion: FolderSuggestion) -> dict[str, Any]:
        return {
            "name": suggestion.folder_name,
            "description": suggestion.description,
            "reasoning": suggestion.reasoning,
            "files": [_name(item) for item in suggestion.files],
            "renames": {
                mapping.original_file.display_name: mapping.suggested_name
                for mapping in suggestion.rename_mappings
                if mapping.has_rename
            },
            "subfolders": [_folder(child) for child in suggestion.subfolders],
        }

    return {
        "folders": [_folder(suggestion) for suggestion in plan.suggestions],
        "unorganized": [_name(item) for item in plan.unorganized_files],
        "notes": plan.notes,
        "version": plan.version,
    }


class _FileLookup:
    def __init__(self, directory: Path, files: Iterable[FileItem]) -> None:
        self._root = normalize(directory)
        self._by_relative: dict[str, FileItem] = {}
        self._by_display: dict[str, list[FileItem]] = {}
        self._by_name: dict[str, list[FileItem]] = {}
        self.missing: list[str] = []
        for item in files:
            try:
                relative = normalize(item.path).relative_to(self._root).as_posix()
            except ValueError:
                relative = item.path.as_posix()
            self._by_relative[relative] = item
            self._by_display.setdefault(item.display_name, []).append(item)
            self._by_name.setdefault(item.name, []).append(item)

    def resolve(self, reference: str) -> FileItem | None:
        key = reference.strip().replace("\\", "/")
        while key.startswith("./"):
            key = key[2:]
        item = self._by_relative.get(key)
        if item is None:
            for index in (self._by_display, self._by_name):
                matches = index.get(key, [])
                if len(matches) == 1:
                    item = matches[0]
                    break
        if item is None:
            self.missing.append(reference)
        return item


def _convert(folder: FolderEntry, lookup: _FileLookup) -> FolderSuggestion:
    items = [lookup.resolve(reference) for reference in folder.files]
    placed = [item for item in items if item is not None]
    mappings: list[RenameMapping] = []
    for original, suggested in folder.renames.items():
        match = next(
            (
                item
                for item in placed
                if original in {item.display_name, item.name}
                or normalize(item.path).name == original
            ),
            None,
        )
        if match is None:
            lookup.missing.append(original)
            continue
        mappings.append(RenameMapping(original_file=match, suggested_name=suggested))

    return FolderSuggestion(
        folder_name=folder.name,
        description=folder.description,
        files=placed,
        subfolders=[_convert(child, lookup) for child in folder.subfolders],
        rename_mappings=mappings,
        reasoning=folder.reasoning if folder.reasoning is not None else folder.description,
    )


__all__ = [
    "PlanDocument",
    "FolderEntry",
    "UnorganizedEntry",
    "parse_plan_document",
    "load_plan_file",
    "dump_plan_document",
]
