"""
Thread-safe synchronous event bus.
"""
from __future__ import annotations

import logging
import threading
from typing import Iterable

from fil_terminator.core.events.event_sink import BatchEvent, EventSink

LOGGER = logging.getLogger(__name__)


class EventBus:
    """Dispatches events to registered sinks.

    Workers emit concurrently; dispatch is serialized so sinks never see two
    events at once. Delivery is best effort: a sink that raises is logged and
    skipped, and the emitting task carries on.
    """

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._lock = threading.Lock()
        self._closed = False

    def register(self, sink: EventSink) -> None:
        """Register a new sink."""
        with self._lock:
            self._sinks.append(sink)

    def emit(self, event: BatchEvent) -> None:
        """Emit an event to all sinks."""
        with self._lock:
            for sink in self._sinks:
                try:
                    sink.on_event(event)
                except Exception:  # pylint: disable=broad-exception-caught
                    LOGGER.exception(
                        "Event sink failed",
                        extra={"sink": type(sink).__name__, "event": type(event).__name__},
                    )

    def close(self) -> None:
        """
        Finalize all sinks that expose a close() method.
        """
        with self._lock:
            if self._closed:
                return

            for sink in self._sinks:
                close_fn = getattr(sink, "close", None)
                if callable(close_fn):
                    close_fn()

            self._closed = True
