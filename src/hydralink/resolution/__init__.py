"""
Resolution module — reference parsing and the match ranking policy.
"""

from .policy import FilterMode, ResolutionPolicy, apply_filter, dedupe_by_document, rank
from .references import Reference, find_references, parse_reference, reference_at

__all__ = [
    "FilterMode",
    "Reference",
    "ResolutionPolicy",
    "apply_filter",
    "dedupe_by_document",
    "find_references",
    "parse_reference",
    "rank",
    "reference_at",
]
