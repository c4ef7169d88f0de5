"""Watched folders and debounced change detection."""

from .models import WatchedFolder
from .store import DEFAULT_FOLDERS_PATH, UnknownWatchedFolderError, WatchedFolderStore
from .watcher import FolderWatcher

__all__ = [
    "WatchedFolder",
    "WatchedFolderStore",
    "UnknownWatchedFolderError",
    "DEFAULT_FOLDERS_PATH",
    "FolderWatcher",
]
