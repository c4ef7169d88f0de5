"""Debounced filesystem watching for watched folders."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional
from uuid import UUID

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .models import WatchedFolder

LOGGER = logging.getLogger(__name__)

ChangeCallback = Callable[[WatchedFolder], None]
RevertCheck = Callable[[Path], bool]
TimerFactory = Callable[..., Any]


def _never_reverting(_: Path) -> bool:
    return False


class FolderWatcher:
    """Watch folders and invoke a callback once changes settle.

    Every event restarts the folder's debounce timer, so the callback fires
    ``trigger_delay`` seconds after the last change. When the timer fires the
    callback is skipped if the folder no longer auto-organizes or if the
    folder lies under a path that is currently being reverted.
    """

    def __init__(
        self,
        on_change: ChangeCallback,
        *,
        is_path_being_reverted: RevertCheck = _never_reverting,
        recursive: bool = True,
        observer_factory: Callable[[], Any] = Observer,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Initialize the watcher.

        Args:
            on_change: Called with the folder once its changes have settled.
            is_path_being_reverted: Guard consulted before triggering.
            recursive: Whether subdirectories are watched too.
            observer_factory: Creates the watchdog observer.
            timer_factory: Creates debounce timers with the ``threading.Timer`` signature.
        """
        self._on_change = on_change
        self._is_path_being_reverted = is_path_being_reverted
        self._recursive = recursive
        self._observer_factory = observer_factory
        self._timer_factory = timer_factory
        self._observer: Any = None
        self._folders: dict[UUID, WatchedFolder] = {}
        self._watches: dict[UUID, Any] = {}
        self._timers: dict[UUID, Any] = {}
        self._generations: dict[UUID, int] = {}
        self._lock = threading.RLock()

    def start_watching(self, folder: WatchedFolder) -> bool:
        """Begin watching ``folder``, replacing any existing watch for its id.

        Returns:
            bool: ``True`` when the watch is active.
        """
        self.stop_watching(folder.id)
        if not folder.is_enabled:
            return False
        directory = folder.directory
        if not directory.is_dir():
            LOGGER.warning("Cannot watch %s: not a directory.", directory)
            return False
        with self._lock:
            observer = self._ensure_observer()
            handler = _FolderEventHandler(self, folder.id)
            try:
                watch = observer.schedule(handler, str(directory), recursive=self._recursive)
            except OSError as exc:
                LOGGER.warning("Cannot watch %s: %s", directory, exc)
                return False
            self._folders[folder.id] = folder
            self._watches[folder.id] = watch
        LOGGER.info("Watching %s", directory)
        return True

    def stop_watching(self, folder_id: UUID) -> None:
        with self._lock:
            timer = self._timers.pop(folder_id, None)
            if timer is not None:
                timer.cancel()
            self._generations.pop(folder_id, None)
            folder = self._folders.pop(folder_id, None)
            watch = self._watches.pop(folder_id, None)
            if watch is not None and self._observer is not None:
                self._observer.unschedule(watch)
        if folder is not None:
            LOGGER.info("Stopped watching %s", folder.path)

    def stop_all_watching(self) -> None:
        """Cancel every timer and watch, then stop the observer."""
        with self._lock:
            folder_ids = list(self._folders)
        for folder_id in folder_ids:
            self.stop_watching(folder_id)
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)

    def sync_with_folders(self, folders: Iterable[WatchedFolder]) -> None:
        """Watch exactly the enabled folders in ``folders``.

        Folders whose settings changed are re-watched so new delays apply.
        """
        desired = {folder.id: folder for folder in folders if folder.is_enabled}
        with self._lock:
            current = dict(self._folders)
        for folder_id in current.keys() - desired.keys():
            self.stop_watching(folder_id)
        for folder_id, folder in desired.items():
            if current.get(folder_id) != folder:
                self.start_watching(folder)

    def watched_ids(self) -> set[UUID]:
        with self._lock:
            return set(self._folders)

    def pending_ids(self) -> set[UUID]:
        """Return the ids of folders with a debounce timer running."""
        with self._lock:
            return set(self._timers)

    def notify_change(self, folder_id: UUID) -> None:
        """Restart the debounce timer for ``folder_id``."""
        with self._lock:
            folder = self._folders.get(folder_id)
            if folder is None:
                return
            previous = self._timers.pop(folder_id, None)
            if previous is not None:
                previous.cancel()
            generation = self._generations.get(folder_id, 0) + 1
            self._generations[folder_id] = generation
            timer = self._timer_factory(
                folder.trigger_delay, self._fire, args=(folder_id, generation)
            )
            timer.daemon = True
            self._timers[folder_id] = timer
            timer.start()

    def _fire(self, folder_id: UUID, generation: int) -> None:
        with self._lock:
            if self._generations.get(folder_id) != generation:
                return
            self._timers.pop(folder_id, None)
            folder: Optional[WatchedFolder] = self._folders.get(folder_id)
        if folder is None or not folder.auto_organize:
            return
        if self._is_path_being_reverted(folder.directory):
            LOGGER.info("Ignoring changes in %s while a revert is in progress.", folder.path)
            return
        try:
            self._on_change(folder)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Organizing %s after a change failed.", folder.path)

    def _ensure_observer(self) -> Any:
        if self._observer is None:
            self._observer = self._observer_factory()
            self._observer.start()
        return self._observer


class _FolderEventHandler(FileSystemEventHandler):
    """Forward watchdog events for one folder to the watcher."""

    def __init__(self, watcher: FolderWatcher, folder_id: UUID) -> None:
        self._watcher = watcher
        self._folder_id = folder_id

    def on_created(self, event: FileSystemEvent) -> None:
        self._watcher.notify_change(self._folder_id)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._watcher.notify_change(self._folder_id)

    def on_moved(self, event: FileSystemEvent) -> None:  # pragma: no cover - watchdog-specific
        self._watcher.notify_change(self._folder_id)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._watcher.notify_change(self._folder_id)


__all__ = ["FolderWatcher"]
