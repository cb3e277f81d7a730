"""
Structured logging setup.

Three independent pipelines:
1. File (JSON) — if config.file is set. Captures everything (DEBUG+).
2. Human handler (stderr) — HUMAN events only: scans, updates, watcher.
3. Technical console (stderr) — DEBUG/INFO, controlled by -v. Excludes HUMAN.

Default (no -v): only HUMAN lines and warnings reach the terminal.
With -v: adds INFO. With -vv: adds DEBUG. With --quiet/--json: silent.
"""

import logging
import sys
from pathlib import Path

import structlog

from ..config.schema import LoggingConfig
from .human import HumanLogHandler
from .levels import HUMAN


def configure_logging(
    config: LoggingConfig,
    json_output: bool = False,
    quiet: bool = False,
) -> None:
    """Configure the whole logging system.

    Args:
        config: Logging configuration (level, file, verbose)
        json_output: If True, disables human and console handlers (--json)
        quiet: If True, disables human and console handlers (--quiet)
    """
    logging.root.handlers.clear()
    structlog.reset_defaults()

    # Root logger captures everything; handlers filter by level
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[],
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    show_terminal = not quiet and not json_output

    # ── Pipeline 1: JSON file ────────────────────────────────────────────
    file_handler = None
    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(file_path), encoding="utf-8")
        file_handler.setLevel(_level_to_int(config.level))
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(file_handler)

    # ── Pipeline 2: Human handler ────────────────────────────────────────
    if show_terminal:
        human_handler = HumanLogHandler(stream=sys.stderr)
        human_handler.setLevel(HUMAN)
        human_handler.addFilter(lambda record: record.levelno == HUMAN)
        logging.root.addHandler(human_handler)

    # ── Pipeline 3: Technical console ────────────────────────────────────
    if show_terminal:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(_verbose_to_level(config.verbose))
        console_handler.addFilter(lambda record: record.levelno != HUMAN)

        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(console_handler)

    # ── structlog ────────────────────────────────────────────────────────
    # Handlers render the event dict themselves (HumanLogHandler reads its fields)
    structlog.configure(
        processors=shared_processors + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _verbose_to_level(verbose: int) -> int:
    """Map the -v counter to the console handler level.

    No -v → WARNING, -v → INFO, -vv and more → DEBUG.
    """
    levels = {
        0: logging.WARNING,
        1: logging.INFO,
        2: logging.DEBUG,
    }
    return levels.get(verbose, logging.DEBUG)


def _level_to_int(level: str) -> int:
    """Map the configured level name to the file handler level."""
    return {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "human": HUMAN,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }.get(level, logging.DEBUG)
