"""
Event sink interface.

The bus serializes delivery, so a sink never sees two events at once, but
consecutive events may come from different worker threads. Sinks holding
resources also expose ``close()``; the bus calls it once on shutdown.
"""
from __future__ import annotations

from typing import Protocol, Union

from fil_terminator.core.events.events import (
    SectorDecisionEvent,
    SectorOmittedEvent,
    TaskFinishedEvent,
    TaskSkippedEvent,
    TaskStartedEvent,
)

BatchEvent = Union[
    TaskStartedEvent,
    TaskFinishedEvent,
    TaskSkippedEvent,
    SectorOmittedEvent,
    SectorDecisionEvent,
]


class EventSink(Protocol):
    def on_event(self, event: BatchEvent) -> None:
        """Consume one batch progress or sector event."""
