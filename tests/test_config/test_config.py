"""
Tests for configuration loading.

Covers:
- Schema defaults and validation
- YAML loading and deep_merge
- Environment variable overrides
- CLI overrides and precedence
"""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from hydralink.config import AppConfig, ResolverConfig, WatchConfig, WorkspaceConfig, load_config
from hydralink.config.loader import apply_cli_overrides, deep_merge, load_env_overrides, load_yaml_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HYDRALINK_WORKSPACE", "HYDRALINK_LOG_LEVEL", "HYDRALINK_MATCH_FILTER"):
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "hydralink.yaml"
    path.write_text(text, encoding="utf-8")
    return path


# ── Schema ───────────────────────────────────────────────────────────────


class TestSchema:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.workspace.roots == [Path(".")]
        assert config.workspace.include_patterns == ["*.yaml", "*.yml"]
        assert "**/node_modules/**" in config.workspace.exclude_patterns
        assert "**/site-packages/**" in config.workspace.exclude_patterns
        assert config.resolver.match_filter == "top"
        assert config.resolver.isolate_workspace_folders is True
        assert config.watch.debounce_ms == 300
        assert config.logging.level == "human"

    def test_long_filter_names_are_normalized(self) -> None:
        assert ResolverConfig(match_filter="Perfect matches only").match_filter == "perfect"
        assert ResolverConfig(match_filter="top matches only").match_filter == "top"

    def test_unknown_filter_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ResolverConfig(match_filter="closest")

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(resolver={"mode": "top"})

    def test_empty_roots_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WorkspaceConfig(roots=[])

    def test_debounce_range(self) -> None:
        with pytest.raises(ValidationError):
            WatchConfig(debounce_ms=-1)
        with pytest.raises(ValidationError):
            WatchConfig(debounce_ms=60_000)


# ── Loader ───────────────────────────────────────────────────────────────


class TestLoader:
    def test_deep_merge(self) -> None:
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        assert deep_merge(base, {"a": {"b": 99}, "e": 4}) == {"a": {"b": 99, "c": 2}, "d": 3, "e": 4}
        assert base == {"a": {"b": 1, "c": 2}, "d": 3}

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            "workspace:\n"
            "  roots: [conf, extra]\n"
            "resolver:\n"
            "  match_filter: perfect matches only\n"
            "  isolate_workspace_folders: false\n"
            "watch:\n"
            "  debounce_ms: 50\n",
        )
        config = load_config(config_path=path)
        assert config.workspace.roots == [Path("conf"), Path("extra")]
        assert config.resolver.match_filter == "perfect"
        assert config.resolver.isolate_workspace_folders is False
        assert config.watch.debounce_ms == 50

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        assert load_yaml_config(write_config(tmp_path, "")) == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nope.yaml")

    def test_invalid_yaml_values(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "resolver:\n  match_filter: nearest\n")
        with pytest.raises(ValidationError):
            load_config(config_path=path)


class TestOverrides:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HYDRALINK_WORKSPACE", f"one{os.pathsep}two")
        monkeypatch.setenv("HYDRALINK_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("HYDRALINK_MATCH_FILTER", "all")
        assert load_env_overrides() == {
            "workspace": {"roots": ["one", "two"]},
            "logging": {"level": "debug"},
            "resolver": {"match_filter": "all"},
        }

    def test_env_beats_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_config(tmp_path, "resolver:\n  match_filter: perfect\n")
        monkeypatch.setenv("HYDRALINK_MATCH_FILTER", "all")
        assert load_config(config_path=path).resolver.match_filter == "all"

    def test_cli_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HYDRALINK_MATCH_FILTER", "all")
        config = load_config(cli_args={"match_filter": "perfect"})
        assert config.resolver.match_filter == "perfect"

    def test_cli_workspace_and_flags(self, tmp_path: Path) -> None:
        config = load_config(cli_args={
            "workspace": (tmp_path / "a", tmp_path / "b"),
            "no_isolation": True,
            "debounce_ms": 0,
            "verbose": 2,
        })
        assert config.workspace.roots == [tmp_path / "a", tmp_path / "b"]
        assert config.resolver.isolate_workspace_folders is False
        assert config.watch.debounce_ms == 0
        assert config.logging.verbose == 2

    def test_cli_exclude_extends_defaults(self) -> None:
        config = load_config(cli_args={"exclude": ("build/**",)})
        assert config.workspace.exclude_patterns[-1] == "build/**"
        assert "**/node_modules/**" in config.workspace.exclude_patterns

    def test_cli_exclude_extends_yaml(self) -> None:
        merged = apply_cli_overrides(
            {"workspace": {"exclude_patterns": ["tmp/**"]}},
            {"exclude": ("build/**",)},
        )
        assert merged["workspace"]["exclude_patterns"] == ["tmp/**", "build/**"]

    def test_unset_cli_args_change_nothing(self) -> None:
        merged = apply_cli_overrides({"resolver": {"match_filter": "all"}}, {"match_filter": None, "exclude": ()})
        assert merged == {"resolver": {"match_filter": "all"}}
