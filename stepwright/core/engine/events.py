"""
RunEvents — in-process observer channel for one installation run.

The orchestrator publishes every state change here; the CLI (or any
other front end) subscribes for the lifetime of the run and unsubscribes
when it is done.  Delivery is synchronous and in publish order, so
listeners see events in exactly the order operations occur.

Message standard (v1)
─────────────────────
Every event is a dict with these fields::

    {
        "v": 1,                     # schema version
        "ts": 1739648400.123,       # timestamp
        "seq": 47,                  # monotonic sequence
        "type": "step:start",       # <domain>:<action>
        "key": "Install packages",  # step name or variable name
        "data": { ... },            # event-specific payload
    }
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

Listener = Callable[[dict], None]

# ── Event types ─────────────────────────────────────────────────

RUN_STARTED = "run:started"
RUN_COMPLETED = "run:completed"
RUN_FAILED = "run:failed"
STEP_START = "step:start"
STEP_SKIPPED = "step:skipped"
STEP_COMPLETE = "step:complete"
STEP_ERROR = "step:error"
COMMAND_START = "command:start"
COMMAND_OUTPUT = "command:output"
COMMAND_SKIPPED = "command:skipped"
COMMAND_RESULT = "command:result"
PROMPT_REQUESTED = "prompt:requested"
PROMPT_INVALID = "prompt:invalid"
DISPLAY_SHOWN = "display:shown"
VARIABLE_CAPTURED = "variable:captured"
POSTINSTALL_RESULT = "postinstall:result"


class Subscription:
    """Handle returned by ``RunEvents.subscribe``; close it to unsubscribe."""

    def __init__(self, events: RunEvents, listener: Listener):
        self._events = events
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._events._remove(self._listener)
            self._active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class RunEvents:
    """Ordered pub/sub with a bounded replay buffer.

    Parameters
    ----------
    buffer_size : int
        Maximum number of events kept for ``recent()``.  Older events
        are silently discarded.
    """

    def __init__(self, *, buffer_size: int = 500) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._buffer: deque[dict] = deque(maxlen=buffer_size)
        self._listeners: list[Listener] = []

    # ── Properties ──────────────────────────────────────────────

    @property
    def seq(self) -> int:
        """Current sequence number (monotonically increasing)."""
        with self._lock:
            return self._seq

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    # ── Subscription ────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Subscription:
        """Register *listener*; returns a handle that unsubscribes on close."""
        with self._lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Listener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    # ── Publishing ──────────────────────────────────────────────

    def publish(
        self,
        event_type: str,
        *,
        key: str = "",
        data: dict[str, Any] | None = None,
    ) -> dict:
        """Deliver an event to every listener, in subscription order.

        Returns
        -------
        dict
            The full event dict with ``seq`` assigned.
        """
        with self._lock:
            self._seq += 1
            event: dict[str, Any] = {
                "v": _SCHEMA_VERSION,
                "ts": time.time(),
                "seq": self._seq,
                "type": event_type,
                "key": key,
                "data": data or {},
            }
            self._buffer.append(event)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed on %s", event_type)
        return event

    # ── Replay ──────────────────────────────────────────────────

    def recent(self, event_type: str | None = None) -> list[dict]:
        """Buffered events, oldest first, optionally filtered by type."""
        with self._lock:
            events = list(self._buffer)
        if event_type is None:
            return events
        return [e for e in events if e["type"] == event_type]
