"""
Source change detection on top of watchdog.

Events arrive on the observer's thread. The only state they touch is the
dirty flag, a threading.Event, and setting it is idempotent: any number
of edits between two rebuilds collapse into one pending rebuild.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import FrozenSet, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

WATCH_EXTENSIONS: FrozenSet[str] = frozenset({"c", "cp", "cpp", "h", "hpp"})


def is_watched_path(path: str | bytes, extensions: FrozenSet[str] = WATCH_EXTENSIONS) -> bool:
    if not path:
        return False
    suffix = Path(os.fsdecode(path)).suffix
    return suffix[1:] in extensions if suffix else False


class ChangeDetector(FileSystemEventHandler):
    """
    Sets the dirty flag when a watched source file is modified or renamed.

    A rename counts either way, so an editor that saves by writing a temp
    file and moving it over the source still triggers a rebuild.
    """

    def __init__(self, dirty: threading.Event, extensions: FrozenSet[str] = WATCH_EXTENSIONS):
        super().__init__()
        self.dirty = dirty
        self.extensions = extensions

    def _mark_dirty(self, *paths: str | bytes) -> None:
        for path in paths:
            if is_watched_path(path, self.extensions):
                logger.debug("Source changed: %s", os.fsdecode(path))
                self.dirty.set()
                return

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._mark_dirty(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._mark_dirty(event.dest_path, event.src_path)


class Watcher:
    """Owns one recursive subscription rooted at a project directory."""

    def __init__(self, root: Path, dirty: threading.Event):
        self.root = root
        self.handler = ChangeDetector(dirty)
        self._observer: Optional[Observer] = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        if not self.root.is_dir():
            raise FileNotFoundError(f"Cannot watch non-existent directory: {self.root}")
        observer = Observer()
        observer.schedule(self.handler, str(self.root), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info("Watching %s", self.root)

    def stop(self) -> None:
        """Tear down the subscription; no callback runs after this returns."""
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join()
        logger.info("Stopped watching %s", self.root)


def create_watcher(dirty: threading.Event, root: Path) -> Watcher:
    watcher = Watcher(root, dirty)
    watcher.start()
    return watcher
