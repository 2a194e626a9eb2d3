"""Terminate-or-expire optimizer.

For every active sector the optimizer compares two ways of getting rid of
it at the termination epoch:

- terminate now and pay the termination fee, or
- declare it faulty and let it run to natural expiration, paying the
  continued fault fee for every remaining day.

The decision rule is a threshold on remaining lifetime, not a cost
comparison: sectors that expire within ``threshold_days`` are left to
expire, everything else is terminated. A threshold of zero disables
expiration entirely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from fil_terminator.core.domain.epochs import EPOCHS_PER_DAY, epochs_to_days
from fil_terminator.core.domain.errors import InvalidInputError, TaskError
from fil_terminator.core.domain.types import SectorAction, SectorStrategy, StrategyResult
from fil_terminator.core.events.events import SectorDecisionEvent, SectorOmittedEvent
from fil_terminator.core.fees.evaluator import evaluate_sector

if TYPE_CHECKING:
    from fil_terminator.core.domain.types import Sector
    from fil_terminator.core.events.event_bus import EventBus
    from fil_terminator.core.network.resolver import ResolvedTarget
    from fil_terminator.core.ports.penalty_model import PenaltyModel

LOGGER = logging.getLogger(__name__)


def choose_action(remaining_epochs: int, threshold_days: int) -> SectorAction:
    """Return ``"expire"`` when the sector ends within the threshold window."""
    if threshold_days < 0:
        raise InvalidInputError(f"expiration threshold cannot be negative: {threshold_days}")
    if threshold_days == 0:
        return "terminate"
    if remaining_epochs <= threshold_days * EPOCHS_PER_DAY:
        return "expire"
    return "terminate"


def optimize_operator(
    operator_id: str,
    sectors: Iterable[Sector],
    resolved: ResolvedTarget,
    penalty: PenaltyModel,
    threshold_days: int,
    event_bus: EventBus | None = None,
) -> StrategyResult:
    """Build the per-sector plan and aggregated costs for one operator.

    Sectors already expired at the termination epoch are counted and skipped.
    A sector whose pricing fails is omitted from every total; its number is
    recorded on the result and a SectorOmittedEvent is emitted.
    """
    if threshold_days < 0:
        raise InvalidInputError(f"expiration threshold cannot be negative: {threshold_days}")

    details: list[SectorStrategy] = []
    omitted: list[int] = []
    expired = 0
    total = 0

    for sector in sectors:
        total += 1
        try:
            fee = evaluate_sector(sector, resolved, penalty)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = TaskError.from_exception(exc)
            omitted.append(sector.sector_number)
            LOGGER.warning(
                "Omitting sector from strategy",
                extra={
                    "operator_id": operator_id,
                    "sector_number": sector.sector_number,
                    "error": str(error),
                },
            )
            if event_bus is not None:
                event_bus.emit(
                    SectorOmittedEvent(
                        operator_id=operator_id,
                        sector_number=sector.sector_number,
                        error_kind=error.kind.value,
                        message=error.message,
                    )
                )
            continue

        if fee.is_expired:
            expired += 1
            continue

        action = choose_action(fee.remaining_epochs, threshold_days)
        recommended = fee.termination_fee if action == "terminate" else fee.expiration_cost
        detail = SectorStrategy(
            sector_number=fee.sector_number,
            expiration_epoch=fee.expiration,
            remaining_days=epochs_to_days(fee.remaining_epochs),
            action=action,
            termination_fee=fee.termination_fee,
            daily_fault_fee=fee.fault_fee,
            expiration_fee=fee.expiration_cost,
            recommended_fee=recommended,
        )
        details.append(detail)

        if event_bus is not None:
            event_bus.emit(
                SectorDecisionEvent(
                    operator_id=operator_id,
                    sector_number=detail.sector_number,
                    action=action,
                    remaining_days=detail.remaining_days,
                    recommended_fee=recommended,
                )
            )

    terminate = [d for d in details if d.action == "terminate"]
    expire = [d for d in details if d.action == "expire"]
    termination_fee = sum(d.termination_fee for d in terminate)
    expiration_fee = sum(d.expiration_fee for d in expire)

    return StrategyResult(
        operator_id=operator_id,
        termination_epoch=resolved.target_epoch,
        current_epoch=resolved.current_epoch,
        is_estimate=resolved.is_estimate,
        expiration_threshold_days=threshold_days,
        total_sectors=total,
        expired_sectors=expired,
        terminate_sectors=len(terminate),
        expire_sectors=len(expire),
        omitted_sectors=len(omitted),
        omitted_sector_numbers=tuple(omitted),
        termination_fee=termination_fee,
        expiration_fee=expiration_fee,
        total_fee=termination_fee + expiration_fee,
        sector_details=tuple(details),
    )


# ---------------------------------------------------------------------------
# Fleet summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FleetSummary:
    operators: int
    successful: int
    failed: int

    total_sectors: int
    terminate_sectors: int
    expire_sectors: int
    omitted_sectors: int
    terminate_pct: float
    expire_pct: float

    termination_fee: int
    expiration_fee: int
    combined_fee: int
    # Cost if every priced sector were terminated instead.
    all_terminate_fee: int
    savings: int
    savings_pct: float


def summarize_fleet(results: Iterable[StrategyResult]) -> FleetSummary:
    """Aggregate strategy results; failed operators only count as failures."""
    results = list(results)
    ok = [r for r in results if r.error is None]

    total_sectors = sum(r.total_sectors for r in ok)
    terminate = sum(r.terminate_sectors for r in ok)
    expire = sum(r.expire_sectors for r in ok)
    termination_fee = sum(r.termination_fee for r in ok)
    expiration_fee = sum(r.expiration_fee for r in ok)
    combined = termination_fee + expiration_fee
    all_terminate = sum(r.all_terminate_fee for r in ok)
    savings = all_terminate - combined

    return FleetSummary(
        operators=len(results),
        successful=len(ok),
        failed=len(results) - len(ok),
        total_sectors=total_sectors,
        terminate_sectors=terminate,
        expire_sectors=expire,
        omitted_sectors=sum(r.omitted_sectors for r in ok),
        terminate_pct=terminate * 100 / total_sectors if total_sectors else 0.0,
        expire_pct=expire * 100 / total_sectors if total_sectors else 0.0,
        termination_fee=termination_fee,
        expiration_fee=expiration_fee,
        combined_fee=combined,
        all_terminate_fee=all_terminate,
        savings=savings,
        savings_pct=savings * 100 / all_terminate if all_terminate else 0.0,
    )
