"""
Filesystem watcher — watchdog events into the UpdateQueue.

The handler only filters and translates; debounce, ordering and the actual
reindexing belong to UpdateQueue and WorkspaceIndexer.
"""

import fnmatch
from collections.abc import Sequence
from pathlib import Path

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .events import DocumentEvent, EventKind, UpdateQueue
from .host import DEFAULT_INCLUDE_PATTERNS

logger = structlog.get_logger()


class WorkspaceEventHandler(FileSystemEventHandler):
    """Forward create/modify/delete/move events of included files."""

    def __init__(
        self,
        queue: UpdateQueue,
        include_patterns: Sequence[str] = DEFAULT_INCLUDE_PATTERNS,
    ) -> None:
        super().__init__()
        self.queue = queue
        self.include_patterns = tuple(include_patterns)

    def _wanted(self, path: str | bytes) -> bool:
        if isinstance(path, bytes):
            path = path.decode(errors="replace")
        name = Path(path).name
        return any(fnmatch.fnmatch(name, p) for p in self.include_patterns)

    def _submit(self, kind: EventKind, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = path.decode(errors="replace")
        self.queue.submit(DocumentEvent(kind=kind, path=Path(path)))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._wanted(event.src_path):
            self._submit(EventKind.CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._wanted(event.src_path):
            self._submit(EventKind.CHANGED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._wanted(event.src_path):
            self._submit(EventKind.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if self._wanted(event.src_path):
            self._submit(EventKind.DELETED, event.src_path)
        dest = getattr(event, "dest_path", "")
        if dest and self._wanted(dest):
            self._submit(EventKind.CREATED, dest)


class WorkspaceWatcher:
    """Recursive watchdog observer over every workspace root."""

    def __init__(
        self,
        roots: Sequence[Path],
        queue: UpdateQueue,
        include_patterns: Sequence[str] = DEFAULT_INCLUDE_PATTERNS,
    ) -> None:
        self.roots = [Path(r) for r in roots]
        self.queue = queue
        self.handler = WorkspaceEventHandler(queue, include_patterns)
        self._observer: Observer | None = None
        self.log = logger.bind(component="watcher")

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        for root in self.roots:
            if not root.is_dir():
                self.log.warning("watcher.root_missing", root=str(root))
                continue
            observer.schedule(self.handler, str(root), recursive=True)
        observer.start()
        self._observer = observer
        self.queue.start()
        self.log.info("watcher.started", roots=[str(r) for r in self.roots])

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self.queue.stop(flush=True)
        self.log.info("watcher.stopped")
