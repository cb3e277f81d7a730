"""
Data types shared by the parser, the reverse path index and the resolver.

A KeyDefinition is one occurrence of a key in a YAML document. Its logical
path is the document location (directories + file stem) followed by the
chain of nested keys, e.g. ``conf/model/resnet.yaml`` → ``optim: {lr: 0.1}``
defines ``("conf", "model", "resnet", "optim", "lr")``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


@dataclass(frozen=True)
class Anchor:
    """Location of a key token inside its document (0-based, end exclusive)."""

    line: int
    start: int
    end: int


@dataclass(frozen=True)
class KeyDefinition:
    """One key definition with its full logical path."""

    logical_path: tuple[str, ...]
    document_id: str
    anchor: Anchor

    def __post_init__(self) -> None:
        if not self.logical_path:
            raise ValueError("logical_path must contain at least one component")

    @property
    def key(self) -> str:
        return self.logical_path[-1]

    @property
    def dotted(self) -> str:
        return ".".join(self.logical_path)

    def suffixes(self) -> Iterator[tuple[str, ...]]:
        """Yield every suffix of the path, from the last key up to the full path."""
        n = len(self.logical_path)
        for level in range(1, n + 1):
            yield self.logical_path[n - level:]


@dataclass(frozen=True)
class Match:
    """A query hit: the definition and the suffix length that matched."""

    definition: KeyDefinition
    match_level: int

    @property
    def document_id(self) -> str:
        return self.definition.document_id

    @property
    def anchor(self) -> Anchor:
        return self.definition.anchor

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable view used by the CLI."""
        return {
            "document": self.document_id,
            "line": self.anchor.line,
            "start": self.anchor.start,
            "end": self.anchor.end,
            "match_level": self.match_level,
            "path": self.definition.dotted,
        }


@dataclass
class IndexStats:
    """Summary of a full scan."""

    documents: int
    definitions: int
    suffix_keys: int
    failed: list[str]
    build_time_ms: float


class DocumentState(Enum):
    """Lifecycle of a tracked document inside the workspace indexer."""

    UNINDEXED = "unindexed"
    INDEXED = "indexed"
    REINDEXED = "reindexed"
    REMOVED = "removed"
