"""
Logging event sink.
"""
from __future__ import annotations

import logging
from typing import Any

from fil_terminator.core.events.events import SectorOmittedEvent, TaskFinishedEvent


class LoggingEventSink:
    """Forwards events to a logger.

    Failures and omissions are logged at WARNING, routine progress at DEBUG.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def on_event(self, event: Any) -> None:
        level = logging.DEBUG
        if isinstance(event, SectorOmittedEvent):
            level = logging.WARNING
        elif isinstance(event, TaskFinishedEvent) and not event.ok:
            level = logging.WARNING
        self._logger.log(level, type(event).__name__, extra={"event": event})
