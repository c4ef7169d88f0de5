"""Persistence of organization history."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable
from uuid import UUID

from pydantic import ValidationError

from .errors import MissingHistoryEntryError, StateError
from .models import OrganizationHistoryEntry, OrganizationStatus

DEFAULT_HISTORY_PATH = Path("~/.refiler/history.json")
DEFAULT_MAX_ENTRIES = 100


class HistoryRepository:
    """Store history entries newest-first in a JSON file."""

    def __init__(
        self,
        path: Path | None = None,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        """Initialize the repository.

        Args:
            path: JSON file holding the entries.
            max_entries: Entries beyond this count are dropped, oldest first.
        """
        self._path = (path or DEFAULT_HISTORY_PATH).expanduser()
        self._max_entries = max(1, max_entries)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[OrganizationHistoryEntry]:
        """Return every stored entry, newest first.

        Raises:
            StateError: If the history file cannot be parsed.
        """
        with self._lock:
            return self._read()

    def add_entry(self, entry: OrganizationHistoryEntry) -> None:
        """Insert ``entry`` at the front of the history."""
        with self._lock:
            entries = self._read()
            entries.insert(0, entry)
            self._write(entries[: self._max_entries])

    def update_entry(
        self,
        entry_id: UUID,
        change: Callable[[OrganizationHistoryEntry], OrganizationHistoryEntry],
    ) -> OrganizationHistoryEntry:
        """Replace the entry ``entry_id`` with ``change(entry)`` and return it.

        Raises:
            MissingHistoryEntryError: If no entry has that id.
        """
        with self._lock:
            entries = self._read()
            for index, entry in enumerate(entries):
                if entry.id == entry_id:
                    updated = change(entry)
                    entries[index] = updated
                    self._write(entries)
                    return updated
        raise MissingHistoryEntryError(f"No history entry with id {entry_id}")

    def get(self, entry_id: UUID) -> OrganizationHistoryEntry:
        for entry in self.load():
            if entry.id == entry_id:
                return entry
        raise MissingHistoryEntryError(f"No history entry with id {entry_id}")

    def find(self, prefix: str) -> OrganizationHistoryEntry:
        """Return the single entry whose id starts with ``prefix``."""
        needle = prefix.strip().lower()
        matches = [entry for entry in self.load() if str(entry.id).startswith(needle)]
        if len(matches) != 1:
            reason = "No" if not matches else "More than one"
            raise MissingHistoryEntryError(f"{reason} history entry matches {prefix!r}")
        return matches[0]

    def entries_for(self, directory: Path | str) -> list[OrganizationHistoryEntry]:
        """Return the entries recorded for ``directory``, newest first."""
        target = str(directory)
        return [entry for entry in self.load() if entry.directory_path == target]

    def clear(self) -> None:
        with self._lock:
            self._write([])

    def total_files_organized(self) -> int:
        return sum(entry.files_organized for entry in self.load())

    def total_folders_created(self) -> int:
        return sum(entry.folders_created for entry in self.load())

    def success_rate(self) -> float:
        """Return the share of entries that completed successfully."""
        entries = self.load()
        if not entries:
            return 0.0
        return sum(1 for entry in entries if entry.success) / len(entries)

    def _read(self) -> list[OrganizationHistoryEntry]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        except json.JSONDecodeError as exc:
            raise StateError(f"Invalid history data in {self._path}: {exc}") from exc
        if not isinstance(data, list):
            raise StateError(f"History file {self._path} must contain a list.")
        try:
            return [OrganizationHistoryEntry.model_validate(item) for item in data]
        except ValidationError as exc:
            raise StateError(f"Invalid history entry in {self._path}: {exc}") from exc

    def _write(self, entries: list[OrganizationHistoryEntry]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [entry.model_dump(mode="json") for entry in entries]
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


__all__ = [
    "HistoryRepository",
    "DEFAULT_HISTORY_PATH",
    "OrganizationHistoryEntry",
    "OrganizationStatus",
    "StateError",
    "MissingHistoryEntryError",
]
