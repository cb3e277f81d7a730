"""
ReferenceService — the object callers hold on to.

Wires the configured host, indexer, resolution policy, update queue and
(optionally) the filesystem watcher, and exposes the caller surface:

    with ReferenceService.from_config(config) as service:
        service.initialize()
        service.resolve(["optim", "lr"])
        service.resolve_reference("${model.optim.lr}", source_document_id=doc)
        service.resolve_at(path, line=12, column=20)
        service.refresh()

The index lives inside this object only; nothing is module-global.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Callable

import structlog

from .config.schema import AppConfig
from .indexer.events import DocumentEvent, UpdateQueue
from .indexer.host import DocumentReadError, FileSystemHost, WorkspaceHost, document_id_for
from .indexer.models import IndexStats, Match
from .indexer.watcher import WorkspaceWatcher
from .indexer.workspace import WorkspaceIndexer
from .resolution.policy import FilterMode, ResolutionPolicy
from .resolution.references import parse_reference, reference_at

logger = structlog.get_logger()

UpdateCallback = Callable[[DocumentEvent, int], None]


class ReferenceService:
    """Owns the workspace index and answers reference queries."""

    def __init__(
        self,
        host: WorkspaceHost,
        exclude_patterns: Sequence[str],
        match_filter: FilterMode | str = FilterMode.TOP,
        isolate_workspace_folders: bool = True,
        debounce_seconds: float = 0.3,
        include_patterns: Sequence[str] = ("*.yaml", "*.yml"),
        on_update: UpdateCallback | None = None,
        watch: bool = False,
    ) -> None:
        """Initialize the service (no scan yet; see initialize()).

        Args:
            host: Source of documents
            exclude_patterns: Globs of documents never indexed
            match_filter: Default filter mode of resolve()
            isolate_workspace_folders: Keep matches inside the source root
            debounce_seconds: Per-document quiet period for watched changes
            include_patterns: File name globs forwarded by the watcher
            on_update: Called after each applied update with the event and
                the document's new definition count
            watch: Start the filesystem watcher once initialize() completes
        """
        self.host = host
        self.indexer = WorkspaceIndexer(host, exclude_patterns=exclude_patterns)
        self.policy = ResolutionPolicy(
            query_fn=self.indexer.query,
            workspace_root_of=host.workspace_root_of,
            isolate_workspace_folders=isolate_workspace_folders,
            default_filter=FilterMode.parse(match_filter),
        )
        self.queue = UpdateQueue(self._apply_update, debounce_seconds=debounce_seconds)
        self.include_patterns = tuple(include_patterns)
        self.on_update = on_update
        self.watch = watch
        self._watcher: WorkspaceWatcher | None = None
        self.log = logger.bind(component="service")

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        on_update: UpdateCallback | None = None,
        watch: bool | None = None,
    ) -> "ReferenceService":
        """Build a service from AppConfig; watch=None follows config.watch.enabled."""
        ws = config.workspace
        host = FileSystemHost(
            roots=ws.roots,
            include_patterns=ws.include_patterns,
            exclude_patterns=ws.exclude_patterns,
        )
        return cls(
            host=host,
            exclude_patterns=ws.exclude_patterns,
            match_filter=config.resolver.match_filter,
            isolate_workspace_folders=config.resolver.isolate_workspace_folders,
            debounce_seconds=config.watch.debounce_ms / 1000,
            include_patterns=ws.include_patterns,
            on_update=on_update,
            watch=config.watch.enabled if watch is None else watch,
        )

    # --- Lifecycle ---

    def initialize(self) -> IndexStats:
        stats = self.indexer.initialize()
        if self.watch:
            self.start_watching()
        return stats

    def refresh(self) -> IndexStats:
        """Drop pending updates and rebuild the whole index."""
        self.queue.clear()
        return self.indexer.refresh()

    def start_watching(self) -> None:
        if self._watcher is None:
            self._watcher = WorkspaceWatcher(self.host.roots, self.queue, self.include_patterns)
        self._watcher.start()

    def stop_watching(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()

    @property
    def watching(self) -> bool:
        return self._watcher is not None and self._watcher.running

    def dispose(self) -> None:
        self.stop_watching()
        self.queue.stop(flush=False)
        self.indexer.dispose()
        self.log.debug("service.disposed")

    def __enter__(self) -> "ReferenceService":
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()

    def notify(self, event: DocumentEvent) -> None:
        """Submit an external change notification (editor buffers, tests)."""
        self.queue.submit(event)

    def _apply_update(self, event: DocumentEvent) -> None:
        self.indexer.apply(event)
        if self.on_update is not None:
            count = len(self.indexer.definitions_for(event.path))
            self.on_update(event, count)

    # --- Queries ---

    def resolve(
        self,
        query_path: Sequence[str],
        filter_mode: FilterMode | str | None = None,
        source_document_id: str | None = None,
    ) -> list[Match]:
        return self.policy.resolve(query_path, filter_mode, source_document_id)

    def resolve_reference(
        self,
        reference: str,
        filter_mode: FilterMode | str | None = None,
        source_document_id: str | None = None,
    ) -> list[Match]:
        """Resolve ``${a.b.c}`` (or ``a.b.c``); computed references give []."""
        components = parse_reference(reference)
        if components is None:
            return []
        return self.resolve(components, filter_mode, source_document_id)

    def resolve_at(
        self,
        path: Path,
        line: int,
        column: int,
        filter_mode: FilterMode | str | None = None,
    ) -> list[Match]:
        """Resolve the interpolation under a 0-based (line, column) of a document."""
        try:
            text = self.host.read_document_text(path)
        except DocumentReadError as e:
            self.log.warning("service.read_failed", path=str(path), error=e.reason)
            return []

        lines = text.splitlines()
        if not 0 <= line < len(lines):
            return []
        reference = reference_at(lines[line], column)
        if reference is None:
            return []
        return self.resolve(reference.components, filter_mode, document_id_for(path))
