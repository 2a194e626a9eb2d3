"""
Semantic test: bounded concurrent execution.

Invariant:
Outcome i belongs to task i regardless of completion order, a failing task
never affects its neighbours, and tasks not yet started when the batch is
cancelled (or interrupted) come back as CANCELLED outcomes. A failing event
sink never costs a task its outcome.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import threading
import time

import pytest

from fil_terminator.batch import scheduler
from fil_terminator.batch.scheduler import run_tasks
from fil_terminator.core.domain.errors import ErrorKind, InvalidInputError, SnapshotUnavailableError
from fil_terminator.core.events.event_bus import EventBus
from fil_terminator.core.events.events import TaskFinishedEvent, TaskSkippedEvent, TaskStartedEvent


def test_outcomes_follow_input_order() -> None:
    delays = [0.05, 0.0, 0.03, 0.01, 0.02]

    def slow_square(i: int) -> int:
        time.sleep(delays[i])
        return i * i

    outcomes = run_tasks(list(range(5)), slow_square, workers=4)

    assert [o.index for o in outcomes] == [0, 1, 2, 3, 4]
    assert [o.value for o in outcomes] == [0, 1, 4, 9, 16]
    assert all(o.ok for o in outcomes)


def test_failure_is_isolated() -> None:
    def worker(i: int) -> int:
        if i == 1:
            raise SnapshotUnavailableError("no tipset")
        if i == 3:
            raise RuntimeError("boom")
        return i

    outcomes = run_tasks([0, 1, 2, 3], worker, workers=2)

    assert [o.ok for o in outcomes] == [True, False, True, False]
    assert outcomes[1].error.kind is ErrorKind.SNAPSHOT_UNAVAILABLE
    assert outcomes[3].error.kind is ErrorKind.EXTERNAL_CALL_FAILURE
    assert outcomes[2].value == 2


def test_in_flight_tasks_never_exceed_workers() -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def worker(_: int) -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1

    run_tasks(list(range(20)), worker, workers=3)

    assert 1 <= peak <= 3


def test_cancel_before_start_skips_everything(recording_sink) -> None:
    cancel = threading.Event()
    cancel.set()
    calls: list[int] = []

    outcomes = run_tasks([1, 2, 3], calls.append, workers=2, cancel=cancel, event_bus=EventBus([recording_sink]))

    assert calls == []
    assert [o.error.kind for o in outcomes] == [ErrorKind.CANCELLED] * 3
    assert len(recording_sink.of_type(TaskSkippedEvent)) == 3
    assert recording_sink.of_type(TaskStartedEvent) == []


def test_cancel_mid_batch_keeps_finished_outcomes() -> None:
    cancel = threading.Event()

    def worker(i: int) -> int:
        if i == 1:
            cancel.set()
        return i

    outcomes = run_tasks([0, 1, 2, 3], worker, workers=1, cancel=cancel)

    assert [o.value for o in outcomes[:2]] == [0, 1]
    assert [o.error.kind for o in outcomes[2:]] == [ErrorKind.CANCELLED] * 2


def test_interrupt_returns_finished_outcomes(monkeypatch) -> None:
    cancel = threading.Event()
    real_wait = scheduler.wait
    calls = 0

    def interrupted_wait(futures):
        nonlocal calls
        calls += 1
        if calls == 1:
            real_wait(futures[:1])
            raise KeyboardInterrupt
        return real_wait(futures)

    def worker(i: int) -> int:
        if i == 0:
            # Ctrl-C lands while the first task is running.
            cancel.set()
        return i * 10

    monkeypatch.setattr(scheduler, "wait", interrupted_wait)

    outcomes = run_tasks([0, 1, 2], worker, workers=1, cancel=cancel)

    assert cancel.is_set()
    assert [o.index for o in outcomes] == [0, 1, 2]
    assert outcomes[0].value == 0
    assert [o.error.kind for o in outcomes[1:]] == [ErrorKind.CANCELLED] * 2


def test_failing_sink_does_not_lose_outcomes(recording_sink) -> None:
    class FullDiskSink:
        def on_event(self, event) -> None:
            if isinstance(event, TaskStartedEvent) and event.index == 1:
                raise OSError("disk full")
            if isinstance(event, TaskFinishedEvent) and event.index == 2:
                raise OSError("disk full")

    bus = EventBus([FullDiskSink(), recording_sink])

    outcomes = run_tasks([1, 2, 3], lambda x: x * 10, workers=2, event_bus=bus)

    assert [o.value for o in outcomes] == [10, 20, 30]
    assert all(o.ok for o in outcomes)
    assert len(recording_sink.of_type(TaskFinishedEvent)) == 3


def test_events_bracket_each_task(recording_sink) -> None:
    def worker(i: int) -> int:
        if i == 2:
            raise InvalidInputError("bad")
        return i

    run_tasks([0, 1, 2], worker, workers=2, event_bus=EventBus([recording_sink]), label="calc")

    started = recording_sink.of_type(TaskStartedEvent)
    finished = recording_sink.of_type(TaskFinishedEvent)
    assert sorted(e.index for e in started) == [0, 1, 2]
    assert {e.label for e in finished} == {"calc"}
    failed = [e for e in finished if not e.ok]
    assert [(e.index, e.error_kind) for e in failed] == [(2, "invalid_input")]


def test_empty_batch() -> None:
    assert run_tasks([], lambda x: x, workers=4) == []


@pytest.mark.parametrize("workers", [0, -3])
def test_workers_must_be_positive(workers: int) -> None:
    with pytest.raises(InvalidInputError):
        run_tasks([1], lambda x: x, workers=workers)
