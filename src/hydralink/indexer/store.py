"""
Reverse path index — in-memory store of key definitions by path suffix.

Every definition is registered under each suffix of its logical path, so a
definition with path ``(a, b, c)`` lives under ``(c,)``, ``(b, c)`` and
``(a, b, c)``. References are usually partial (``${optim.lr}``) while
definitions carry their full path; looking up each suffix of the reference
is then a dict access per level instead of a scan of the corpus.

Buckets are keyed by suffix and then by owning document, which makes
removing a document proportional to that document's own definitions.
"""

from collections.abc import Iterable

from .models import KeyDefinition, Match

Suffix = tuple[str, ...]


class ReversePathIndex:
    """Mutable suffix index over all key definitions of a workspace."""

    def __init__(self) -> None:
        self._by_document: dict[str, list[KeyDefinition]] = {}
        self._by_suffix: dict[Suffix, dict[str, list[KeyDefinition]]] = {}

    def add(self, definition: KeyDefinition) -> None:
        """Record a definition under its document and under every path suffix."""
        self._by_document.setdefault(definition.document_id, []).append(definition)
        for suffix in definition.suffixes():
            bucket = self._by_suffix.setdefault(suffix, {})
            bucket.setdefault(definition.document_id, []).append(definition)

    def add_all(self, definitions: Iterable[KeyDefinition]) -> int:
        count = 0
        for definition in definitions:
            self.add(definition)
            count += 1
        return count

    def remove_document(self, document_id: str) -> int:
        """Drop every definition owned by a document.

        Suffix buckets left empty are deleted. Removing a document that is
        not indexed is a no-op.

        Returns:
            Number of definitions removed.
        """
        definitions = self._by_document.pop(document_id, None)
        if not definitions:
            return 0

        touched: set[Suffix] = set()
        for definition in definitions:
            touched.update(definition.suffixes())

        for suffix in touched:
            bucket = self._by_suffix.get(suffix)
            if bucket is None:
                continue
            bucket.pop(document_id, None)
            if not bucket:
                del self._by_suffix[suffix]

        return len(definitions)

    def query(self, path_components: Iterable[str]) -> list[Match]:
        """Look up every suffix of a reference path, longest first.

        A definition may appear at more than one level; callers that need a
        single answer per document deduplicate (see ResolutionPolicy).
        """
        path = tuple(path_components)
        matches: list[Match] = []
        for level in range(len(path), 0, -1):
            bucket = self._by_suffix.get(path[len(path) - level:])
            if not bucket:
                continue
            for definitions in bucket.values():
                matches.extend(Match(definition=d, match_level=level) for d in definitions)
        return matches

    def clear(self) -> None:
        self._by_document.clear()
        self._by_suffix.clear()

    # --- Introspection ---

    def documents(self) -> list[str]:
        return list(self._by_document)

    def definitions_for(self, document_id: str) -> list[KeyDefinition]:
        return list(self._by_document.get(document_id, []))

    def registration_count(self, definition: KeyDefinition) -> int:
        """Number of suffix buckets currently holding this exact definition."""
        count = 0
        for suffix in definition.suffixes():
            bucket = self._by_suffix.get(suffix, {})
            count += sum(1 for d in bucket.get(definition.document_id, []) if d is definition)
        return count

    def suffix_count(self) -> int:
        return len(self._by_suffix)

    def __len__(self) -> int:
        return sum(len(defs) for defs in self._by_document.values())

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._by_document
