"""
Resolution policy — from raw index hits to the candidates shown to a user.

Steps, in order:
1. query the index (every suffix level of the reference, longest first)
2. keep one match per document, the one with the highest match level
3. sort by match level (desc), then document id
4. optionally keep only documents of the source document's workspace root
5. apply the filter mode (all / top / perfect)
"""

from collections.abc import Iterable, Sequence
from enum import Enum
from pathlib import Path
from typing import Callable

import structlog

from ..indexer.models import Match

logger = structlog.get_logger()

QueryFn = Callable[[Iterable[str]], list[Match]]
RootOfFn = Callable[[Path], Path | None]


class FilterMode(str, Enum):
    """Which of the ranked matches are returned."""

    ALL = "all"
    TOP = "top"          # only matches at the best level reached by this query
    PERFECT = "perfect"  # only matches of the whole reference path

    @classmethod
    def parse(cls, value: "str | FilterMode") -> "FilterMode":
        """Accept enum values and the long names used in editor settings."""
        if isinstance(value, FilterMode):
            return value
        normalized = value.strip().lower()
        aliases = {
            "all": cls.ALL,
            "top": cls.TOP,
            "top matches only": cls.TOP,
            "perfect": cls.PERFECT,
            "perfect matches only": cls.PERFECT,
        }
        if normalized not in aliases:
            raise ValueError(
                f"Unknown match filter '{value}'. Valid: {', '.join(sorted(aliases))}"
            )
        return aliases[normalized]


def dedupe_by_document(matches: Iterable[Match]) -> list[Match]:
    """Keep, per document, the match with the highest level (first seen on ties)."""
    best: dict[str, Match] = {}
    for match in matches:
        current = best.get(match.document_id)
        if current is None or match.match_level > current.match_level:
            best[match.document_id] = match
    return list(best.values())


def rank(matches: Iterable[Match]) -> list[Match]:
    return sorted(matches, key=lambda m: (-m.match_level, m.document_id))


def apply_filter(matches: list[Match], mode: FilterMode, query_length: int) -> list[Match]:
    if not matches or mode is FilterMode.ALL:
        return list(matches)
    if mode is FilterMode.TOP:
        top = max(m.match_level for m in matches)
        return [m for m in matches if m.match_level == top]
    return [m for m in matches if m.match_level == query_length]


class ResolutionPolicy:
    """Ranks, deduplicates and filters index matches for one reference."""

    def __init__(
        self,
        query_fn: QueryFn,
        workspace_root_of: RootOfFn | None = None,
        isolate_workspace_folders: bool = True,
        default_filter: FilterMode = FilterMode.TOP,
    ) -> None:
        """Initialize the policy.

        Args:
            query_fn: Index lookup (WorkspaceIndexer.query)
            workspace_root_of: Maps a document path to its workspace root;
                without it isolation is never applied
            isolate_workspace_folders: Restrict matches to the source
                document's workspace root
            default_filter: Filter used when resolve() gets none
        """
        self._query = query_fn
        self._root_of = workspace_root_of
        self.isolate_workspace_folders = isolate_workspace_folders
        self.default_filter = default_filter
        self.log = logger.bind(component="resolver")

    def resolve(
        self,
        query_path: Sequence[str],
        filter_mode: FilterMode | str | None = None,
        source_document_id: str | None = None,
    ) -> list[Match]:
        """Resolve a reference path to its ranked candidate definitions.

        Args:
            query_path: Reference components, e.g. ``["optim", "lr"]``
            filter_mode: all / top / perfect (default: the policy's default)
            source_document_id: Document containing the reference, used by
                the workspace isolation filter

        Returns:
            Ranked matches; empty when nothing matches or the path is empty.
        """
        path = [c for c in query_path if c]
        if not path or len(path) != len(query_path):
            return []
        mode = FilterMode.parse(filter_mode) if filter_mode is not None else self.default_filter

        matches = rank(dedupe_by_document(self._query(path)))
        if matches and self.isolate_workspace_folders and source_document_id:
            matches = self._isolate(matches, source_document_id)
        result = apply_filter(matches, mode, len(path))

        self.log.debug(
            "resolve.done",
            reference=".".join(path),
            filter=mode.value,
            matches=len(result),
        )
        return result

    def _isolate(self, matches: list[Match], source_document_id: str) -> list[Match]:
        if self._root_of is None:
            return matches
        source_root = self._root_of(Path(source_document_id))
        if source_root is None:
            return matches
        return [m for m in matches if self._root_of(Path(m.document_id)) == source_root]
