"""
Indexer module — structural parsing and the reverse path index.

Turns every YAML document of the workspace into key definitions addressed
by logical path and keeps them indexed by path suffix as files change.
"""

from .events import DocumentEvent, EventKind, UpdateQueue
from .host import DocumentReadError, FileSystemHost, WorkspaceHost, document_id_for
from .models import Anchor, DocumentState, IndexStats, KeyDefinition, Match
from .parser import directory_components_for, parse_document
from .store import ReversePathIndex
from .watcher import WorkspaceEventHandler, WorkspaceWatcher
from .workspace import WorkspaceIndexer

__all__ = [
    "Anchor",
    "DocumentEvent",
    "DocumentReadError",
    "DocumentState",
    "EventKind",
    "FileSystemHost",
    "IndexStats",
    "KeyDefinition",
    "Match",
    "ReversePathIndex",
    "UpdateQueue",
    "WorkspaceEventHandler",
    "WorkspaceHost",
    "WorkspaceIndexer",
    "WorkspaceWatcher",
    "directory_components_for",
    "document_id_for",
    "parse_document",
]
