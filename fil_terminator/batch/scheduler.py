"""Bounded concurrent task execution.

Tasks run on a fixed-size thread pool. Results are positional: outcome ``i``
always belongs to task ``i`` no matter which worker finished first. Each
task writes exactly one pre-allocated slot, so the result list needs no
lock.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, Sequence, TypeVar

from fil_terminator.core.domain.errors import (
    InvalidInputError,
    TaskCancelledError,
    TaskError,
)
from fil_terminator.core.events.events import (
    TaskFinishedEvent,
    TaskSkippedEvent,
    TaskStartedEvent,
)

if TYPE_CHECKING:
    from fil_terminator.core.events.event_bus import EventBus

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class TaskOutcome(Generic[R]):
    index: int
    value: R | None = None
    error: TaskError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_tasks(
    tasks: Sequence[T],
    worker: Callable[[T], R],
    *,
    workers: int,
    cancel: threading.Event | None = None,
    event_bus: EventBus | None = None,
    label: str = "task",
) -> list[TaskOutcome[R]]:
    """Run ``worker`` over ``tasks`` with at most ``workers`` in flight.

    A raising task yields an outcome carrying a TaskError and leaves the
    others untouched. Once ``cancel`` is set, tasks that have not started
    yet yield CANCELLED outcomes; finished outcomes are kept. On Ctrl-C
    the batch is cancelled the same way and its outcomes are still returned;
    callers check ``cancel.is_set()`` to tell an interrupted batch apart.
    """
    if workers < 1:
        raise InvalidInputError(f"workers must be >= 1, got {workers}")

    stop = cancel if cancel is not None else threading.Event()
    total = len(tasks)
    slots: list[TaskOutcome[R] | None] = [None] * total
    if total == 0:
        return []

    def _run(index: int, task: T) -> None:
        if stop.is_set():
            error = TaskError.from_exception(TaskCancelledError("batch cancelled before task started"))
            slots[index] = TaskOutcome(index=index, error=error)
            if event_bus is not None:
                event_bus.emit(
                    TaskSkippedEvent(label=label, index=index, total=total, reason=error.message)
                )
            return

        thread_name = threading.current_thread().name
        if event_bus is not None:
            event_bus.emit(
                TaskStartedEvent(label=label, index=index, total=total, worker=thread_name)
            )

        started = time.monotonic()
        try:
            outcome: TaskOutcome[R] = TaskOutcome(index=index, value=worker(task))
        except Exception as exc:  # pylint: disable=broad-exception-caught
            outcome = TaskOutcome(index=index, error=TaskError.from_exception(exc))
            LOGGER.debug(
                "Task failed",
                extra={"label": label, "index": index, "error": str(outcome.error)},
            )
        slots[index] = outcome

        if event_bus is not None:
            event_bus.emit(
                TaskFinishedEvent(
                    label=label,
                    index=index,
                    total=total,
                    worker=thread_name,
                    ok=outcome.ok,
                    duration_seconds=time.monotonic() - started,
                    error_kind=outcome.error.kind.value if outcome.error else None,
                )
            )

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=label) as pool:
        futures = [pool.submit(_run, index, task) for index, task in enumerate(tasks)]
        try:
            wait(futures)
        except KeyboardInterrupt:
            stop.set()
            LOGGER.warning(
                "Batch interrupted, cancelling tasks not yet started",
                extra={"label": label},
            )
            wait(futures)
        for future in futures:
            future.result()

    return [slot for slot in slots if slot is not None]
