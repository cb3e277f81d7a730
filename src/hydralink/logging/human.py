"""
Human Log — formatter and helper for readable progress lines.

Example output of `hydralink watch`:

    ✓ Indexed 42 documents (1318 keys) in 35.2ms
    👁  Watching conf/ (Ctrl+C to stop)
      ↻ conf/model/resnet.yaml (27 keys)
      ✗ conf/old.yaml removed
    ■ Watcher stopped
"""

import logging
import sys

from .levels import HUMAN


class HumanFormatter:
    """Turns structured HUMAN events into one readable line each."""

    def format_event(self, event: str, **kw) -> str | None:
        """Format an event, or return None when it has no human form."""
        match event:

            case "human.scan.complete":
                documents = kw.get("documents", "?")
                definitions = kw.get("definitions", "?")
                ms = kw.get("build_time_ms", "?")
                line = f"✓ Indexed {documents} documents ({definitions} keys) in {ms}ms"
                failed = kw.get("failed") or 0
                if failed:
                    line += f", {failed} unreadable"
                return line

            case "human.watch.started":
                roots = kw.get("roots") or []
                return f"👁  Watching {', '.join(roots)} (Ctrl+C to stop)"

            case "human.watch.stopped":
                return "■ Watcher stopped"

            case "human.document.updated":
                path = kw.get("path", "?")
                if kw.get("kind") == "deleted":
                    return f"  ✗ {path} removed"
                return f"  ↻ {path} ({kw.get('definitions', 0)} keys)"

            case "human.resolve.none":
                return f"✗ No definition found for '{kw.get('reference', '?')}'"

            case _:
                return None


class HumanLogHandler(logging.Handler):
    """Logging handler that renders HUMAN records with HumanFormatter.

    Writes to stderr so stdout stays clean for command output.
    """

    _RECORD_ATTRS = frozenset({
        "msg", "args", "levelname", "levelno", "pathname",
        "filename", "module", "exc_info", "exc_text", "stack_info",
        "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "message",
        "taskName", "name", "event",
    })

    def __init__(self, stream=None) -> None:
        super().__init__(level=HUMAN)
        self.stream = stream or sys.stderr
        self.formatter_inst = HumanFormatter()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if record.levelno != HUMAN:
                return

            event, kw = self._extract(record)
            formatted = self.formatter_inst.format_event(event, **kw)
            if formatted is not None:
                self.stream.write(formatted + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)

    def _extract(self, record: logging.LogRecord) -> tuple[str, dict]:
        # structlog passes the event dict as record.msg
        if isinstance(record.msg, dict):
            kw = dict(record.msg)
            return str(kw.pop("event", "")), kw
        event = getattr(record, "event", None) or record.getMessage()
        kw = {
            k: v for k, v in record.__dict__.items()
            if not k.startswith("_") and k not in self._RECORD_ATTRS
        }
        return event, kw


class HumanLog:
    """Typed helper to emit HUMAN events.

    Usage:
        hlog = HumanLog(structlog.get_logger())
        hlog.scan_complete(documents=42, definitions=1318, failed=0, build_time_ms=35.2)
    """

    def __init__(self, logger) -> None:
        self._log = logger

    def scan_complete(self, documents: int, definitions: int, failed: int, build_time_ms: float) -> None:
        self._log.log(
            HUMAN, "human.scan.complete",
            documents=documents,
            definitions=definitions,
            failed=failed,
            build_time_ms=build_time_ms,
        )

    def watch_started(self, roots: list[str]) -> None:
        self._log.log(HUMAN, "human.watch.started", roots=roots)

    def watch_stopped(self) -> None:
        self._log.log(HUMAN, "human.watch.stopped")

    def document_updated(self, kind: str, path: str, definitions: int) -> None:
        self._log.log(HUMAN, "human.document.updated", kind=kind, path=path, definitions=definitions)

    def no_match(self, reference: str) -> None:
        self._log.log(HUMAN, "human.resolve.none", reference=reference)
