"""
Workspace indexer — keeps the reverse path index in sync with the workspace.

Lifecycle:
    indexer = WorkspaceIndexer(FileSystemHost([root]))
    indexer.initialize()            # full scan
    indexer.document_changed(path)  # incremental updates (watcher / editor)
    indexer.query(["optim", "lr"])
    indexer.refresh()               # rebuild from scratch if drift is suspected
    indexer.dispose()

Each update replaces a document's whole contribution (remove all, then add
all) under a single lock, so a query never sees a document half-updated.
"""

import os
import threading
import time
from collections import OrderedDict
from collections.abc import Iterable, Sequence
from pathlib import Path

import structlog

from .events import DocumentEvent, EventKind
from .host import DEFAULT_EXCLUDE_PATTERNS, DocumentReadError, WorkspaceHost, document_id_for, matches_any
from .models import DocumentState, IndexStats, KeyDefinition, Match
from .parser import parse_document
from .store import ReversePathIndex

logger = structlog.get_logger()


class WorkspaceIndexer:
    """Owns the live ReversePathIndex and the per-document bookkeeping."""

    # Deleted documents remembered for state_of(); older ones report UNINDEXED
    removed_history = 256

    def __init__(
        self,
        host: WorkspaceHost,
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
        index: ReversePathIndex | None = None,
    ) -> None:
        self.host = host
        self.exclude_patterns = tuple(exclude_patterns)
        self.index = index or ReversePathIndex()
        self._states: dict[str, DocumentState] = {}
        self._removed: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.RLock()
        self._initialized = False
        self.log = logger.bind(component="indexer")

    @property
    def initialized(self) -> bool:
        return self._initialized

    # --- Full scans ---

    def initialize(self) -> IndexStats:
        """Scan every matching document and populate the index.

        A document that cannot be read or parsed is logged and left with
        zero definitions; the scan itself never aborts.
        """
        with self._lock:
            start_ms = time.monotonic() * 1000
            failed: list[str] = []
            documents = 0

            for path in self.host.list_matching_documents():
                if self.is_excluded(path):
                    continue
                documents += 1
                if not self._index_document(path):
                    failed.append(document_id_for(path))

            self._initialized = True
            stats = IndexStats(
                documents=documents,
                definitions=len(self.index),
                suffix_keys=self.index.suffix_count(),
                failed=failed,
                build_time_ms=round(time.monotonic() * 1000 - start_ms, 1),
            )
            self.log.info(
                "indexer.scan.complete",
                documents=stats.documents,
                definitions=stats.definitions,
                failed=len(stats.failed),
                build_time_ms=stats.build_time_ms,
            )
            return stats

    def refresh(self) -> IndexStats:
        """Discard the whole index and repeat the startup scan."""
        with self._lock:
            self.log.info("indexer.refresh")
            self._reset()
            return self.initialize()

    def dispose(self) -> None:
        with self._lock:
            self._reset()
            self._initialized = False

    def _reset(self) -> None:
        self.index.clear()
        self._states.clear()
        self._removed.clear()

    # --- Incremental updates ---

    def document_created(self, path: Path) -> None:
        self._reindex(path, created=True)

    def document_changed(self, path: Path) -> None:
        self._reindex(path, created=False)

    def document_deleted(self, path: Path) -> None:
        if self.is_excluded(path):
            self.log.debug("indexer.event.excluded", path=str(path))
            return
        with self._lock:
            document_id = document_id_for(path)
            removed = self.index.remove_document(document_id)
            if self._states.pop(document_id, None) is not None:
                self._removed[document_id] = None
                self._removed.move_to_end(document_id)
                while len(self._removed) > self.removed_history:
                    self._removed.popitem(last=False)
            self.log.debug("indexer.document.removed", document=document_id, definitions=removed)

    def apply(self, event: DocumentEvent) -> None:
        """Dispatch one update event (see UpdateQueue)."""
        if event.kind is EventKind.DELETED:
            self.document_deleted(event.path)
        elif event.kind is EventKind.CREATED:
            self.document_created(event.path)
        else:
            self.document_changed(event.path)

    def _reindex(self, path: Path, created: bool) -> None:
        if self.is_excluded(path):
            self.log.debug("indexer.event.excluded", path=str(path))
            return
        with self._lock:
            document_id = document_id_for(path)
            previous = self._states.get(document_id)
            # A create may follow a coalesced delete: always remove first
            self.index.remove_document(document_id)
            indexed = self._index_document(path)
            if indexed and not created and previous in (DocumentState.INDEXED, DocumentState.REINDEXED):
                self._states[document_id] = DocumentState.REINDEXED

    def _index_document(self, path: Path) -> bool:
        """Read, parse and add one document. Returns False on failure."""
        document_id = document_id_for(path)
        self._removed.pop(document_id, None)
        try:
            text = self.host.read_document_text(path)
            definitions = parse_document(
                document_id,
                text,
                self.host.document_directory_components(path),
            )
        except DocumentReadError as e:
            self.log.warning("indexer.document.failed", document=document_id, error=e.reason)
            self._states[document_id] = DocumentState.UNINDEXED
            return False
        except (OSError, UnicodeDecodeError, ValueError) as e:
            self.log.warning("indexer.document.failed", document=document_id, error=str(e))
            self._states[document_id] = DocumentState.UNINDEXED
            return False

        added = self.index.add_all(definitions)
        self._states[document_id] = DocumentState.INDEXED
        self.log.debug("indexer.document.indexed", document=document_id, definitions=added)
        return True

    # --- Queries ---

    def query(self, path_components: Iterable[str]) -> list[Match]:
        with self._lock:
            return self.index.query(path_components)

    def definitions_for(self, path: Path | str) -> list[KeyDefinition]:
        with self._lock:
            return self.index.definitions_for(_as_document_id(path))

    def state_of(self, path: Path | str) -> DocumentState:
        document_id = _as_document_id(path)
        with self._lock:
            state = self._states.get(document_id)
            if state is not None:
                return state
            if document_id in self._removed:
                return DocumentState.REMOVED
            return DocumentState.UNINDEXED

    def scanned_documents(self) -> list[str]:
        """Documents seen by a scan or an update, indexed or not."""
        with self._lock:
            return sorted(self._states)

    def is_excluded(self, path: Path) -> bool:
        """Test a document against the exclusion globs.

        The path is taken relative to its workspace root, or as an absolute
        POSIX path when it lies outside every root.
        """
        absolute = Path(os.path.abspath(path))
        root = self.host.workspace_root_of(absolute)
        if root is not None:
            candidate = absolute.relative_to(root).as_posix()
        else:
            candidate = absolute.as_posix()
        return matches_any(candidate, self.exclude_patterns)


def _as_document_id(path: Path | str) -> str:
    return path if isinstance(path, str) else document_id_for(path)
