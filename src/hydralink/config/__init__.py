"""
Configuration module for hydralink.

Exports the main components for convenient imports.
"""

from .loader import load_config
from .schema import (
    AppConfig,
    LoggingConfig,
    ResolverConfig,
    WatchConfig,
    WorkspaceConfig,
)

__all__ = [
    "load_config",
    "AppConfig",
    "LoggingConfig",
    "ResolverConfig",
    "WatchConfig",
    "WorkspaceConfig",
]
