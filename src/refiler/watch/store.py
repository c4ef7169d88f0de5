"""YAML persistence for the watched folder list."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable
from uuid import UUID

import yaml
from pydantic import ValidationError

from refiler.state.errors import MissingHistoryEntryError, StateError

from .models import WatchedFolder

DEFAULT_FOLDERS_PATH = Path("~/.refiler/watched.yaml")


class UnknownWatchedFolderError(MissingHistoryEntryError):
    """Raised when a watched folder id or path is not in the store."""


class WatchedFolderStore:
    """Keep the list of watched folders in a YAML file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = (path or DEFAULT_FOLDERS_PATH).expanduser()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[WatchedFolder]:
        with self._lock:
            return self._read()

    def add(self, folder: WatchedFolder) -> WatchedFolder:
        """Store ``folder`` unless a folder with the same path is already present.

        Returns:
            WatchedFolder: The stored folder (the existing one for duplicate paths).
        """
        with self._lock:
            folders = self._read()
            for existing in folders:
                if existing.path == folder.path:
                    return existing
            folders.append(folder)
            self._write(folders)
            return folder

    def remove(self, folder_id: UUID) -> WatchedFolder:
        with self._lock:
            folders = self._read()
            for index, folder in enumerate(folders):
                if folder.id == folder_id:
                    del folders[index]
                    self._write(folders)
                    return folder
        raise UnknownWatchedFolderError(f"No watched folder with id {folder_id}")

    def update(self, folder: WatchedFolder) -> WatchedFolder:
        return self._change(folder.id, lambda _: folder)

    def toggle_enabled(self, folder_id: UUID) -> WatchedFolder:
        return self._change(
            folder_id, lambda folder: folder.model_copy(update={"is_enabled": not folder.is_enabled})
        )

    def toggle_auto_organize(self, folder_id: UUID) -> WatchedFolder:
        return self._change(
            folder_id,
            lambda folder: folder.model_copy(update={"auto_organize": not folder.auto_organize}),
        )

    def mark_triggered(self, folder_id: UUID) -> WatchedFolder:
        now = datetime.now(timezone.utc)
        return self._change(
            folder_id, lambda folder: folder.model_copy(update={"last_triggered": now})
        )

    def find(self, reference: str) -> WatchedFolder:
        """Return the folder whose id prefix, path or name equals ``reference``."""
        resolved = str(Path(reference).expanduser().absolute())
        for folder in self.load():
            if reference in {folder.path, folder.name} or resolved == folder.path:
                return folder
            if len(reference) >= 4 and str(folder.id).startswith(reference.lower()):
                return folder
        raise UnknownWatchedFolderError(f"No watched folder matches {reference!r}")

    def _change(
        self,
        folder_id: UUID,
        change: Callable[[WatchedFolder], WatchedFolder],
    ) -> WatchedFolder:
        with self._lock:
            folders = self._read()
            for index, folder in enumerate(folders):
                if folder.id == folder_id:
                    folders[index] = change(folder)
                    self._write(folders)
                    return folders[index]
        raise UnknownWatchedFolderError(f"No watched folder with id {folder_id}")

    def _read(self) -> list[WatchedFolder]:
        if not self._path.exists():
            return []
        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise StateError(f"Failed to parse watched folders file: {exc}") from exc
        if not isinstance(raw, dict):
            raise StateError("Watched folders file must contain a mapping at the top level.")
        try:
            return [WatchedFolder.model_validate(item) for item in raw.get("folders") or []]
        except ValidationError as exc:
            raise StateError(f"Invalid watched folder entry: {exc}") from exc

    def _write(self, folders: list[WatchedFolder]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"folders": [folder.model_dump(mode="json") for folder in folders]}
        self._path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = ["WatchedFolderStore", "UnknownWatchedFolderError", "DEFAULT_FOLDERS_PATH"]
