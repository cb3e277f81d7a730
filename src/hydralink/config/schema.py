"""
Pydantic models for hydralink configuration.

Defines all configuration schemas using Pydantic v2 for validation,
defaults, and serialization.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..indexer.host import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from ..resolution.policy import FilterMode


class WorkspaceConfig(BaseModel):
    """Workspace roots and which documents are indexed."""

    roots: list[Path] = Field(
        default_factory=lambda: [Path(".")],
        description="Workspace roots (one per workspace folder)",
    )
    include_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS),
        description="File name globs of the documents to index",
    )
    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description=(
            "Path globs relative to the workspace root that are never indexed "
            "(dependency and virtual-environment directories by default)"
        ),
    )

    model_config = {"extra": "forbid"}

    @field_validator("roots")
    @classmethod
    def _at_least_one_root(cls, v: list[Path]) -> list[Path]:
        if not v:
            raise ValueError("At least one workspace root is required")
        return v


class ResolverConfig(BaseModel):
    """Match ranking and filtering."""

    match_filter: Literal["all", "top", "perfect"] = Field(
        default="top",
        description=(
            "all: every candidate. top: only the best level reached by the query. "
            "perfect: only candidates matching the whole reference."
        ),
    )
    isolate_workspace_folders: bool = Field(
        default=True,
        description="Only return definitions from the referencing document's workspace root",
    )

    model_config = {"extra": "forbid"}

    @field_validator("match_filter", mode="before")
    @classmethod
    def _normalize_filter(cls, v: object) -> object:
        # Accept the long names ("top matches only") as well
        if isinstance(v, str):
            try:
                return FilterMode.parse(v).value
            except ValueError:
                return v
        return v


class WatchConfig(BaseModel):
    """Filesystem watching for incremental updates."""

    enabled: bool = False
    debounce_ms: int = Field(
        default=300,
        ge=0,
        le=10_000,
        description="Quiet period per document before a change is reindexed",
    )

    model_config = {"extra": "forbid"}


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "human", "warn", "error"] = "human"
    file: Path | None = None
    verbose: int = 0

    model_config = {"extra": "forbid"}


class AppConfig(BaseModel):
    """Complete application configuration.

    This is the root of the configuration tree. It combines all sections
    and is the entry point for validation.
    """

    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}
