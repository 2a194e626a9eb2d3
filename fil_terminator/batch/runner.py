"""Request orchestration.

Single-operator entry points run the full pipeline for one request:

    validate id -> resolve target -> version gate -> fetch sectors -> price

Batch entry points fan requests out over the scheduler and turn every
per-task failure into a failed result, so one bad operator never affects
its neighbours.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from fil_terminator.batch.scheduler import run_tasks
from fil_terminator.core.domain.errors import TaskError, UnsupportedVersionError
from fil_terminator.core.domain.types import (
    CalculationRequest,
    CalculationResult,
    StrategyResult,
    StrategyTask,
    validate_operator_id,
)
from fil_terminator.core.fees.calculation import price_operator
from fil_terminator.core.fees.expiration import (
    ExpirationDistribution,
    OperatorExpiration,
    aggregate_expirations,
    operator_expiration,
)
from fil_terminator.core.fees.strategy import optimize_operator
from fil_terminator.core.network.resolver import resolve_target

if TYPE_CHECKING:
    import threading

    from fil_terminator.core.events.event_bus import EventBus
    from fil_terminator.core.network.projection_config import ProjectionConfig
    from fil_terminator.core.network.resolver import ResolvedTarget
    from fil_terminator.core.ports.chain_state import ChainState, SnapshotHandle
    from fil_terminator.core.ports.penalty_model import PenaltyModel

LOGGER = logging.getLogger(__name__)

MIN_MINER_ACTOR_VERSION = 16


def check_actor_version(chain: ChainState, snapshot: SnapshotHandle, operator_id: str) -> int:
    version = chain.actor_version(snapshot, operator_id)
    if version < MIN_MINER_ACTOR_VERSION:
        raise UnsupportedVersionError(
            f"unsupported miner version {version} (need >= {MIN_MINER_ACTOR_VERSION})"
        )
    return version


def _prepare(
    chain: ChainState,
    operator_id: str,
    target_epoch: int,
    projection: ProjectionConfig | None,
) -> ResolvedTarget:
    validate_operator_id(operator_id)
    resolved = resolve_target(chain, target_epoch, projection)
    check_actor_version(chain, resolved.snapshot, operator_id)
    LOGGER.debug(
        "Resolved operator",
        extra={
            "operator_id": operator_id,
            "target_epoch": resolved.target_epoch,
            "is_estimate": resolved.is_estimate,
        },
    )
    return resolved


# ---------------------------------------------------------------------------
# Calculation mode
# ---------------------------------------------------------------------------


def calculate_termination_fee(
    chain: ChainState,
    penalty: PenaltyModel,
    request: CalculationRequest,
    projection: ProjectionConfig | None = None,
    *,
    raise_on_error: bool = False,
) -> CalculationResult:
    """Price termination of the requested sectors of one operator.

    Any failure is fatal for the request. With ``raise_on_error`` the
    exception propagates; otherwise it is returned as a failed result.
    """
    try:
        resolved = _prepare(chain, request.operator_id, request.target_epoch, projection)
        sectors = chain.sectors(
            resolved.snapshot,
            request.operator_id,
            request.sector_numbers or None,
        )
        return price_operator(request.operator_id, sectors, resolved, penalty)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        if raise_on_error:
            raise
        error = TaskError.from_exception(exc)
        LOGGER.warning(
            "Termination fee calculation failed",
            extra={"operator_id": request.operator_id, "error": str(error)},
        )
        return CalculationResult.failed(
            operator_id=request.operator_id,
            target_epoch=request.target_epoch,
            error=error,
        )


def batch_calculate(
    chain: ChainState,
    penalty: PenaltyModel,
    requests: Sequence[CalculationRequest],
    *,
    workers: int,
    projection: ProjectionConfig | None = None,
    cancel: threading.Event | None = None,
    event_bus: EventBus | None = None,
) -> list[CalculationResult]:
    """Price many requests concurrently; result ``i`` belongs to request ``i``."""
    outcomes = run_tasks(
        requests,
        lambda req: calculate_termination_fee(chain, penalty, req, projection, raise_on_error=True),
        workers=workers,
        cancel=cancel,
        event_bus=event_bus,
        label="calculate",
    )

    results: list[CalculationResult] = []
    for request, outcome in zip(requests, outcomes):
        if outcome.error is None:
            results.append(outcome.value)
            continue
        LOGGER.warning(
            "Batch calculation failed",
            extra={"operator_id": request.operator_id, "error": str(outcome.error)},
        )
        results.append(
            CalculationResult.failed(
                operator_id=request.operator_id,
                target_epoch=request.target_epoch,
                error=outcome.error,
            )
        )
    return results


# ---------------------------------------------------------------------------
# Strategy mode
# ---------------------------------------------------------------------------


def calculate_strategy(
    chain: ChainState,
    penalty: PenaltyModel,
    task: StrategyTask,
    projection: ProjectionConfig | None = None,
    *,
    event_bus: EventBus | None = None,
    raise_on_error: bool = False,
) -> StrategyResult:
    """Recommend terminate or expire for every active sector of one operator.

    Operator-level failures fail the task. Per-sector pricing failures only
    omit the affected sectors.
    """
    try:
        resolved = _prepare(chain, task.operator_id, task.termination_epoch, projection)
        sectors = chain.sectors(resolved.snapshot, task.operator_id, None)
        return optimize_operator(
            task.operator_id,
            sectors,
            resolved,
            penalty,
            task.expiration_threshold_days,
            event_bus=event_bus,
        )
    except Exception as exc:  # pylint: disable=broad-exception-caught
        if raise_on_error:
            raise
        error = TaskError.from_exception(exc)
        LOGGER.warning(
            "Strategy calculation failed",
            extra={"operator_id": task.operator_id, "error": str(error)},
        )
        return StrategyResult.failed(task=task, error=error)


def batch_strategy(
    chain: ChainState,
    penalty: PenaltyModel,
    tasks: Sequence[StrategyTask],
    *,
    workers: int,
    projection: ProjectionConfig | None = None,
    cancel: threading.Event | None = None,
    event_bus: EventBus | None = None,
) -> list[StrategyResult]:
    outcomes = run_tasks(
        tasks,
        lambda task: calculate_strategy(
            chain, penalty, task, projection, event_bus=event_bus, raise_on_error=True
        ),
        workers=workers,
        cancel=cancel,
        event_bus=event_bus,
        label="strategy",
    )

    results: list[StrategyResult] = []
    for task, outcome in zip(tasks, outcomes):
        if outcome.error is None:
            results.append(outcome.value)
            continue
        LOGGER.warning(
            "Batch strategy failed",
            extra={"operator_id": task.operator_id, "error": str(outcome.error)},
        )
        results.append(StrategyResult.failed(task=task, error=outcome.error))
    return results


# ---------------------------------------------------------------------------
# Expiration distribution
# ---------------------------------------------------------------------------


def expiration_distribution(
    chain: ChainState,
    operator_ids: Iterable[str],
    *,
    reference_epoch: int = 0,
    workers: int = 1,
    cancel: threading.Event | None = None,
    event_bus: EventBus | None = None,
) -> ExpirationDistribution:
    """Bucket every operator's sectors by days to expiration.

    ``reference_epoch == 0`` means the current head. Sectors are read at the
    reference epoch, or at the head when the reference lies in the future.
    """
    ids = list(operator_ids)
    head = chain.current_height()
    reference = reference_epoch if reference_epoch > 0 else head
    snapshot = chain.snapshot_at(min(reference, head))

    def _one(operator_id: str) -> OperatorExpiration:
        validate_operator_id(operator_id)
        sectors = chain.sectors(snapshot, operator_id, None)
        return operator_expiration(operator_id, sectors, reference)

    outcomes = run_tasks(
        ids,
        _one,
        workers=workers,
        cancel=cancel,
        event_bus=event_bus,
        label="expiration",
    )

    results: list[OperatorExpiration] = []
    for operator_id, outcome in zip(ids, outcomes):
        if outcome.error is None:
            results.append(outcome.value)
            continue
        LOGGER.warning(
            "Failed to process miner",
            extra={"operator_id": operator_id, "error": str(outcome.error)},
        )
        results.append(
            OperatorExpiration(
                operator_id=operator_id,
                reference_epoch=reference,
                error=outcome.error,
            )
        )

    return aggregate_expirations(results, reference)
