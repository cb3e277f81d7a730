"""
Document update events and the debounced single-consumer queue.

File-watch callbacks arrive from other threads and in bursts (an editor
saving on every keystroke, a `git checkout` touching hundreds of files).
UpdateQueue turns them into a strict sequence of updates:

- only the latest pending event per document is kept; earlier ones are
  discarded, since only the final content of a document matters;
- an event is applied once its document has been quiet for the debounce
  delay;
- events are applied one at a time, in the order of their latest
  submission, by a single worker (the background thread, or the caller of
  flush() / process_due()).
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

import structlog

from .host import document_id_for

logger = structlog.get_logger()

DEFAULT_DEBOUNCE_SECONDS = 0.3


class EventKind(Enum):
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass(frozen=True)
class DocumentEvent:
    kind: EventKind
    path: Path


class UpdateQueue:
    """Per-document debounced queue drained by a single consumer."""

    def __init__(
        self,
        apply: Callable[[DocumentEvent], None],
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the queue.

        Args:
            apply: Consumer of each event (usually WorkspaceIndexer.apply)
            debounce_seconds: Quiet period before a document's event is applied
            clock: Monotonic time source (injectable for tests)
        """
        self._apply = apply
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._pending: OrderedDict[str, tuple[DocumentEvent, float]] = OrderedDict()
        self._cond = threading.Condition()
        self._apply_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stopping = False
        self.applied = 0
        self.coalesced = 0
        self.log = logger.bind(component="update_queue")

    def submit(self, event: DocumentEvent) -> None:
        """Queue an event, replacing any pending event for the same document."""
        key = document_id_for(event.path)
        with self._cond:
            if key in self._pending:
                self.coalesced += 1
                del self._pending[key]
            self._pending[key] = (event, self._clock() + self.debounce_seconds)
            self._cond.notify()

    def pending(self) -> list[DocumentEvent]:
        with self._cond:
            return [event for event, _ in self._pending.values()]

    def __len__(self) -> int:
        with self._cond:
            return len(self._pending)

    def clear(self) -> int:
        """Discard every pending event (a full rescan supersedes them)."""
        with self._cond:
            count = len(self._pending)
            self._pending.clear()
            return count

    def process_due(self) -> int:
        """Apply every event whose debounce delay has elapsed."""
        return self._drain(only_due=True)

    def flush(self) -> int:
        """Apply every pending event now, ignoring the debounce delay."""
        return self._drain(only_due=False)

    def _drain(self, only_due: bool) -> int:
        count = 0
        while True:
            with self._cond:
                event = self._pop(only_due)
            if event is None:
                return count
            self._run(event)
            count += 1

    def _pop(self, only_due: bool) -> DocumentEvent | None:
        now = self._clock()
        for key, (event, due) in self._pending.items():
            if not only_due or due <= now:
                del self._pending[key]
                return event
        return None

    def _run(self, event: DocumentEvent) -> None:
        with self._apply_lock:
            try:
                self._apply(event)
                self.applied += 1
            except Exception as e:
                # Logged and skipped; the worker keeps draining
                self.log.error(
                    "queue.apply_failed",
                    kind=event.kind.value,
                    path=str(event.path),
                    error=str(e),
                )

    # --- Background worker ---

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopping = False
        self._thread = threading.Thread(target=self._worker, name="hydralink-updates", daemon=True)
        self._thread.start()
        self.log.debug("queue.started", debounce_seconds=self.debounce_seconds)

    def stop(self, flush: bool = True) -> None:
        """Stop the worker, optionally applying what is still pending."""
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        if flush:
            self.flush()
        self.log.debug("queue.stopped", applied=self.applied, coalesced=self.coalesced)

    @property
    def running(self) -> bool:
        return self._thread is not None

    def _worker(self) -> None:
        while True:
            with self._cond:
                if self._stopping:
                    return
                timeout = self._next_wait()
                if timeout is None or timeout > 0:
                    self._cond.wait(timeout)
                    continue
            self.process_due()

    def _next_wait(self) -> float | None:
        """Seconds until the earliest pending event is due (None if idle)."""
        if not self._pending:
            return None
        earliest = min(due for _, due in self._pending.values())
        return max(0.0, earliest - self._clock())
