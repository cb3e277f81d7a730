"""
Main CLI for hydralink using Click.

Commands:
    index            scan the workspace and print index statistics
    resolve REF      resolve ${a.b.c} (or a.b.c) to its definitions
    at FILE L C      resolve the interpolation under a cursor position
    watch            keep the index live and report updates
    validate-config  check a configuration file
"""

import json
import sys
import time
from pathlib import Path
from typing import Any, Callable

import click
import structlog
from pydantic import ValidationError

from . import __version__
from .config.loader import load_config
from .config.schema import AppConfig
from .indexer.events import DocumentEvent
from .indexer.host import document_id_for
from .indexer.models import IndexStats, Match
from .logging import HumanLog, configure_logging
from .resolution.policy import FilterMode
from .resolution.references import parse_reference
from .service import ReferenceService

# Exit codes
EXIT_NO_MATCH = 1
EXIT_CONFIG_ERROR = 3

_FILTER_CHOICES = [m.value for m in FilterMode]


def _common_options(fn: Callable) -> Callable:
    """Options shared by every command that builds an index."""
    options = [
        click.option(
            "-c",
            "--config",
            type=click.Path(exists=True, path_type=Path),
            help="Path to the YAML configuration file",
        ),
        click.option(
            "-w",
            "--workspace",
            multiple=True,
            type=click.Path(path_type=Path),
            help="Workspace root (repeat for several roots)",
        ),
        click.option(
            "--exclude",
            multiple=True,
            help="Extra exclusion glob, relative to the root (repeatable)",
        ),
        click.option(
            "-v",
            "--verbose",
            count=True,
            help="Technical logging (-v info, -vv debug)",
        ),
        click.option(
            "--log-file",
            type=click.Path(path_type=Path),
            help="Write JSON logs to this file",
        ),
        click.option(
            "--quiet",
            is_flag=True,
            help="No progress output on stderr",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _load(config_path: Path | None, json_output: bool, **cli_args: Any) -> AppConfig:
    """Load config and configure logging; exits with EXIT_CONFIG_ERROR on failure."""
    try:
        config = load_config(config_path=config_path, cli_args=cli_args)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    except ValidationError as e:
        click.echo(f"Invalid configuration:\n{e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    configure_logging(config.logging, json_output=json_output, quiet=cli_args.get("quiet", False))
    return config


def _start(config: AppConfig) -> tuple[ReferenceService, HumanLog, IndexStats]:
    hlog = HumanLog(structlog.get_logger())
    service = ReferenceService.from_config(config, watch=False)
    stats = service.initialize()
    hlog.scan_complete(
        documents=stats.documents,
        definitions=stats.definitions,
        failed=len(stats.failed),
        build_time_ms=stats.build_time_ms,
    )
    return service, hlog, stats


def _display_path(document_id: str) -> str:
    try:
        return Path(document_id).relative_to(Path.cwd()).as_posix()
    except ValueError:
        return document_id


def _print_matches(matches: list[Match], json_output: bool) -> None:
    if json_output:
        click.echo(json.dumps([m.to_dict() for m in matches], indent=2))
        return
    for m in matches:
        location = f"{_display_path(m.document_id)}:{m.anchor.line + 1}:{m.anchor.start + 1}"
        click.echo(f"{location}  level={m.match_level}  {m.definition.dotted}")


@click.group()
@click.version_option(version=__version__, prog_name="hydralink")
def main() -> None:
    """hydralink - resolve ${...} references across Hydra YAML config trees.

    Every key of every YAML document is indexed under its logical path
    (directories + file name + nested keys), so partial references such
    as ${optim.lr} can be traced back to where they are defined.
    """
    pass


@main.command()
@_common_options
@click.option("--json", "json_output", is_flag=True, help="Print statistics as JSON")
def index(config: Path | None, json_output: bool, **kwargs: Any) -> None:
    """Scan the workspace and print index statistics."""
    app_config = _load(config, json_output, **kwargs)
    service, _, stats = _start(app_config)
    with service:
        if json_output:
            click.echo(json.dumps({
                "documents": stats.documents,
                "definitions": stats.definitions,
                "suffix_keys": stats.suffix_keys,
                "failed": stats.failed,
                "build_time_ms": stats.build_time_ms,
            }, indent=2))
        else:
            click.echo(f"Documents:    {stats.documents}")
            click.echo(f"Definitions:  {stats.definitions}")
            click.echo(f"Suffix keys:  {stats.suffix_keys}")
            for doc in stats.failed:
                click.echo(f"Unreadable:   {_display_path(doc)}")


@main.command()
@click.argument("reference")
@_common_options
@click.option(
    "--from",
    "source",
    type=click.Path(path_type=Path),
    help="Document containing the reference (enables workspace isolation)",
)
@click.option(
    "-f",
    "--filter",
    "match_filter",
    type=click.Choice(_FILTER_CHOICES),
    help="Which matches to return (default: from config, 'top')",
)
@click.option("--no-isolation", is_flag=True, help="Search every workspace root")
@click.option("--json", "json_output", is_flag=True, help="Print matches as JSON")
def resolve(
    reference: str,
    config: Path | None,
    source: Path | None,
    json_output: bool,
    **kwargs: Any,
) -> None:
    """Resolve REFERENCE (${a.b.c} or a.b.c) to its definitions.

    Exits with 1 when nothing matches.
    """
    if parse_reference(reference) is None:
        click.echo(f"Not a resolvable reference: {reference}", err=True)
        sys.exit(EXIT_NO_MATCH)

    app_config = _load(config, json_output, **kwargs)
    service, hlog, _ = _start(app_config)
    with service:
        source_id = document_id_for(source) if source else None
        matches = service.resolve_reference(reference, source_document_id=source_id)
        _print_matches(matches, json_output)
        if not matches:
            hlog.no_match(reference)
            sys.exit(EXIT_NO_MATCH)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("line", type=click.IntRange(min=1))
@click.argument("column", type=click.IntRange(min=1))
@_common_options
@click.option(
    "-f",
    "--filter",
    "match_filter",
    type=click.Choice(_FILTER_CHOICES),
    help="Which matches to return (default: from config, 'top')",
)
@click.option("--no-isolation", is_flag=True, help="Search every workspace root")
@click.option("--json", "json_output", is_flag=True, help="Print matches as JSON")
def at(
    file: Path,
    line: int,
    column: int,
    config: Path | None,
    json_output: bool,
    **kwargs: Any,
) -> None:
    """Resolve the ${...} under LINE:COLUMN (1-based) of FILE.

    This is the go-to-definition entry point for editor integrations.
    """
    app_config = _load(config, json_output, **kwargs)
    service, hlog, _ = _start(app_config)
    with service:
        matches = service.resolve_at(file, line - 1, column - 1)
        _print_matches(matches, json_output)
        if not matches:
            hlog.no_match(f"{file}:{line}:{column}")
            sys.exit(EXIT_NO_MATCH)


@main.command()
@_common_options
@click.option(
    "--debounce-ms",
    type=click.IntRange(min=0, max=10_000),
    help="Per-document quiet period before reindexing (default: 300)",
)
def watch(config: Path | None, **kwargs: Any) -> None:
    """Keep the index in sync with the filesystem and report updates.

    Stops with Ctrl+C.
    """
    app_config = _load(config, False, **kwargs)
    hlog = HumanLog(structlog.get_logger())

    def on_update(event: DocumentEvent, definitions: int) -> None:
        hlog.document_updated(event.kind.value, _display_path(document_id_for(event.path)), definitions)

    service = ReferenceService.from_config(app_config, on_update=on_update, watch=False)
    stats = service.initialize()
    hlog.scan_complete(
        documents=stats.documents,
        definitions=stats.definitions,
        failed=len(stats.failed),
        build_time_ms=stats.build_time_ms,
    )

    with service:
        service.start_watching()
        hlog.watch_started([_display_path(document_id_for(r)) for r in service.host.roots])
        try:
            while True:
                time.sleep(0.5)
        except KeyboardInterrupt:
            pass
        finally:
            service.stop_watching()
            hlog.watch_stopped()


@main.command("validate-config")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to the YAML configuration file",
)
def validate_config(config: Path) -> None:
    """Validate a configuration file and print the effective settings."""
    try:
        app_config = load_config(config_path=config)
    except ValidationError as e:
        click.echo(f"Invalid configuration:\n{e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    click.echo(f"Valid configuration: {config}")
    click.echo(f"  Roots:           {', '.join(str(r) for r in app_config.workspace.roots)}")
    click.echo(f"  Include:         {', '.join(app_config.workspace.include_patterns)}")
    click.echo(f"  Exclude:         {len(app_config.workspace.exclude_patterns)} patterns")
    click.echo(f"  Match filter:    {app_config.resolver.match_filter}")
    click.echo(f"  Isolate folders: {app_config.resolver.isolate_workspace_folders}")
    click.echo(f"  Watch debounce:  {app_config.watch.debounce_ms}ms")


if __name__ == "__main__":
    main()
