"""
hydralink - Cross-reference resolution for Hydra-style YAML config trees.

Indexes every key of a workspace's YAML documents by logical path
(directories + file stem + nested keys) and resolves partial references
such as ``${optim.lr}`` to the definitions that end with them.
"""

__version__ = "0.3.0"
__author__ = "hydralink contributors"

from .indexer import KeyDefinition, Match, ReversePathIndex, WorkspaceIndexer
from .resolution import FilterMode, ResolutionPolicy
from .service import ReferenceService

__all__ = [
    "__version__",
    "FilterMode",
    "KeyDefinition",
    "Match",
    "ReferenceService",
    "ResolutionPolicy",
    "ReversePathIndex",
    "WorkspaceIndexer",
]
