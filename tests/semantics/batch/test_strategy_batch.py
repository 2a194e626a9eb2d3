"""
Semantic test: strategy batch.

Invariant:
Each operator gets its own plan at the shared termination epoch; an
operator-level failure marks only that operator failed while sector-level
failures only omit sectors.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

from fil_terminator.batch.runner import batch_strategy, calculate_strategy
from fil_terminator.core.domain.errors import ErrorKind
from fil_terminator.core.domain.types import StrategyTask
from fil_terminator.core.events.event_bus import EventBus
from fil_terminator.core.events.events import SectorOmittedEvent, TaskFinishedEvent

DAY = 2880


def test_strategy_for_one_operator(chain_factory, sector_factory, penalty, head) -> None:
    chain = chain_factory(
        {
            "f01000": [
                sector_factory(1, expiration=head + 2 * DAY, qa_power=4),
                sector_factory(2, expiration=head + 40 * DAY, pledge=8_000),
            ]
        }
    )

    result = calculate_strategy(chain, penalty, StrategyTask(operator_id="f01000"))

    assert result.status == "success"
    assert result.termination_epoch == head
    assert result.expiration_threshold_days == 7
    assert (result.terminate_sectors, result.expire_sectors) == (1, 1)
    assert result.total_fee == 8_000 + 4 * 2


def test_operator_failure_yields_failed_result(chain_factory, penalty) -> None:
    chain = chain_factory({}, failing_operators={"f01000"})
    task = StrategyTask(operator_id="f01000", termination_epoch=5, expiration_threshold_days=3)

    result = calculate_strategy(chain, penalty, task)

    assert result.status == "failed"
    assert result.error.kind is ErrorKind.EXTERNAL_CALL_FAILURE
    assert result.termination_epoch == 5
    assert result.expiration_threshold_days == 3
    assert result.total_fee == 0


def test_batch_mixes_failures_and_omissions(
    chain_factory, sector_factory, penalty_factory, recording_sink, head
) -> None:
    chain = chain_factory(
        {
            "f01000": [
                sector_factory(1, expiration=head + 30 * DAY, pledge=1_000),
                sector_factory(2, expiration=head + 30 * DAY, pledge=13),
            ],
            "f02000": [sector_factory(1, expiration=head + 30 * DAY, pledge=2_000)],
        },
        actor_versions={"f03000": 11},
    )
    chain.sectors_by_operator["f03000"] = []
    tasks = [StrategyTask(operator_id=op) for op in ("f01000", "f03000", "f02000")]
    bus = EventBus([recording_sink])

    results = batch_strategy(
        chain, penalty_factory(failing_pledges={13}), tasks, workers=2, event_bus=bus
    )

    assert [r.operator_id for r in results] == ["f01000", "f03000", "f02000"]
    assert results[0].omitted_sector_numbers == (2,)
    assert results[0].total_fee == 1_000
    assert results[1].error.kind is ErrorKind.UNSUPPORTED_VERSION
    assert results[2].total_fee == 2_000

    assert len(recording_sink.of_type(SectorOmittedEvent)) == 1
    finished = recording_sink.of_type(TaskFinishedEvent)
    assert sorted((e.index, e.ok) for e in finished) == [(0, True), (1, False), (2, True)]
