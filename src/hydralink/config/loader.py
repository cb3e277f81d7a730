"""
Configuration loader with deep merge.

Precedence order (lowest to highest):
1. Defaults (defined in the Pydantic schemas)
2. YAML file
3. Environment variables
4. CLI arguments

The merge is recursive to preserve all keys at all levels.
"""

import os
from pathlib import Path
from typing import Any

import yaml

from ..indexer.host import DEFAULT_EXCLUDE_PATTERNS
from .schema import AppConfig


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge two config dicts; nested sections merge key by key.

    Returns a new dict. Override wins on leaf conflicts, lists included
    (an overridden exclude_patterns replaces the base list).

    Example:
        >>> deep_merge({"resolver": {"match_filter": "top"}, "watch": {"debounce_ms": 300}},
        ...            {"resolver": {"isolate_workspace_folders": False}})
        {'resolver': {'match_filter': 'top', 'isolate_workspace_folders': False}, 'watch': {'debounce_ms': 300}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_yaml_config(config_path: Path | None) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file, or None to skip

    Returns:
        Configuration dictionary, or empty dict if there is no file
    """
    if not config_path:
        return {}

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def load_env_overrides() -> dict[str, Any]:
    """Load overrides from environment variables.

    Supported variables:
        HYDRALINK_WORKSPACE: overrides workspace.roots (os.pathsep separated)
        HYDRALINK_LOG_LEVEL: overrides logging.level
        HYDRALINK_MATCH_FILTER: overrides resolver.match_filter

    Returns:
        Dictionary with overrides from env vars
    """
    overrides: dict[str, Any] = {}

    if workspace := os.environ.get("HYDRALINK_WORKSPACE"):
        roots = [r for r in workspace.split(os.pathsep) if r]
        overrides.setdefault("workspace", {})["roots"] = roots

    if log_level := os.environ.get("HYDRALINK_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = log_level.lower()

    if match_filter := os.environ.get("HYDRALINK_MATCH_FILTER"):
        overrides.setdefault("resolver", {})["match_filter"] = match_filter

    return overrides


def apply_cli_overrides(config_dict: dict[str, Any], cli_args: dict[str, Any]) -> dict[str, Any]:
    """Apply overrides from CLI arguments.

    Args:
        config_dict: Base configuration (already merged with YAML and env)
        cli_args: Dictionary with CLI arguments

    Returns:
        Configuration with CLI overrides applied
    """
    overrides: dict[str, Any] = {}

    if cli_args.get("workspace"):
        overrides.setdefault("workspace", {})["roots"] = [str(r) for r in cli_args["workspace"]]

    if cli_args.get("exclude"):
        base = config_dict.get("workspace", {}).get("exclude_patterns")
        if base is None:
            base = list(DEFAULT_EXCLUDE_PATTERNS)
        overrides.setdefault("workspace", {})["exclude_patterns"] = [
            *base, *cli_args["exclude"],
        ]

    if cli_args.get("match_filter"):
        overrides.setdefault("resolver", {})["match_filter"] = cli_args["match_filter"]

    if cli_args.get("no_isolation"):
        overrides.setdefault("resolver", {})["isolate_workspace_folders"] = False

    if cli_args.get("debounce_ms") is not None:
        overrides.setdefault("watch", {})["debounce_ms"] = cli_args["debounce_ms"]

    if cli_args.get("log_level"):
        overrides.setdefault("logging", {})["level"] = cli_args["log_level"]

    if cli_args.get("log_file"):
        overrides.setdefault("logging", {})["file"] = cli_args["log_file"]

    if cli_args.get("verbose") is not None:
        overrides.setdefault("logging", {})["verbose"] = cli_args["verbose"]

    return deep_merge(config_dict, overrides)


def load_config(
    config_path: Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> AppConfig:
    """Load and validate the complete application configuration.

    Loading process:
    1. Load Pydantic defaults
    2. Merge with YAML (if it exists)
    3. Merge with env vars
    4. Merge with CLI args
    5. Validate with Pydantic

    Args:
        config_path: Path to the YAML configuration file
        cli_args: Dictionary with CLI arguments

    Returns:
        Validated and complete AppConfig

    Raises:
        FileNotFoundError: If config_path does not exist
        ValidationError: If the final configuration is not valid
    """
    cli_args = cli_args or {}

    yaml_config = load_yaml_config(config_path)

    env_overrides = load_env_overrides()
    merged = deep_merge(yaml_config, env_overrides)

    merged = apply_cli_overrides(merged, cli_args)

    return AppConfig(**merged)
