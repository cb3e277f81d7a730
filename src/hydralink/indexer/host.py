"""
Workspace host — where documents come from.

The indexer never touches the filesystem directly: discovery, reading and
location of documents go through a WorkspaceHost. FileSystemHost is the
default implementation over local directories; an editor integration can
supply its own host (open buffers, virtual filesystems) with the same shape.
"""

import fnmatch
import os
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Protocol

import structlog

from .parser import directory_components_for

logger = structlog.get_logger()

DEFAULT_INCLUDE_PATTERNS: tuple[str, ...] = ("*.yaml", "*.yml")

# Dependency / virtual-environment / run-output directories
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "**/node_modules/**",
    "**/.venv/**",
    "**/venv/**",
    "**/site-packages/**",
    "**/.git/**",
    "**/__pycache__/**",
    "**/outputs/**",
    "**/multirun/**",
)


class DocumentReadError(Exception):
    """A document could not be read (deleted, unreadable, not text)."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


def matches_any(relative_path: str, patterns: Sequence[str]) -> bool:
    """Glob match of a POSIX relative path against a set of patterns.

    fnmatch's ``*`` already crosses ``/``; a leading ``**/`` additionally
    matches at the top level, so ``**/venv/**`` excludes ``venv/x.yaml`` as
    well as ``a/venv/x.yaml``.
    """
    for pattern in patterns:
        if fnmatch.fnmatchcase(relative_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(relative_path, pattern[3:]):
            return True
    return False


def document_id_for(path: Path) -> str:
    """Stable identifier of a document: its absolute POSIX path."""
    return Path(os.path.abspath(path)).as_posix()


class WorkspaceHost(Protocol):
    """What the workspace indexer needs from its environment."""

    @property
    def roots(self) -> list[Path]: ...

    def list_matching_documents(self) -> list[Path]: ...

    def read_document_text(self, path: Path) -> str: ...

    def document_directory_components(self, path: Path) -> list[str]: ...

    def workspace_root_of(self, path: Path) -> Path | None: ...


class FileSystemHost:
    """WorkspaceHost over one or more local workspace roots."""

    def __init__(
        self,
        roots: Sequence[Path],
        include_patterns: Sequence[str] = DEFAULT_INCLUDE_PATTERNS,
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
    ) -> None:
        """Initialize the host.

        Args:
            roots: Workspace roots (workspace folders in an editor)
            include_patterns: File name globs of the documents to index
            exclude_patterns: Path globs (relative to the root) never indexed
        """
        self._roots = [Path(os.path.abspath(r)) for r in roots]
        self.include_patterns = tuple(include_patterns)
        self.exclude_patterns = tuple(exclude_patterns)

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def list_matching_documents(self) -> list[Path]:
        """Every included, non-excluded document under all roots, sorted."""
        found: dict[str, Path] = {}
        for root in self._roots:
            if not root.is_dir():
                logger.warning("host.root_missing", root=str(root))
                continue
            for path in self._walk(root):
                found.setdefault(document_id_for(path), path)
        return [found[key] for key in sorted(found)]

    def _walk(self, root: Path) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            rel_dir = Path(dirpath).relative_to(root).as_posix()
            rel_dir = "" if rel_dir == "." else rel_dir + "/"

            # Prune excluded directories in-place
            dirnames[:] = sorted(
                d for d in dirnames
                if not matches_any(f"{rel_dir}{d}/", self.exclude_patterns)
            )

            for filename in sorted(filenames):
                if not self.is_included(filename):
                    continue
                if matches_any(f"{rel_dir}{filename}", self.exclude_patterns):
                    continue
                yield Path(dirpath) / filename

    def is_included(self, filename: str) -> bool:
        return any(fnmatch.fnmatch(filename, p) for p in self.include_patterns)

    def read_document_text(self, path: Path) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(Path(path), str(e)) from e

    def document_directory_components(self, path: Path) -> list[str]:
        return directory_components_for(Path(os.path.abspath(path)), self.workspace_root_of(path))

    def workspace_root_of(self, path: Path) -> Path | None:
        """Deepest workspace root containing the path, or None."""
        absolute = Path(os.path.abspath(path))
        best: Path | None = None
        for root in self._roots:
            if absolute == root or root in absolute.parents:
                if best is None or len(root.parts) > len(best.parts):
                    best = root
        return best
