"""Operator-level termination fee aggregation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from fil_terminator.core.domain.types import CalculationResult
from fil_terminator.core.fees.evaluator import evaluate_sector

if TYPE_CHECKING:
    from fil_terminator.core.domain.types import Sector
    from fil_terminator.core.network.resolver import ResolvedTarget
    from fil_terminator.core.ports.penalty_model import PenaltyModel


def price_operator(
    operator_id: str,
    sectors: Iterable[Sector],
    resolved: ResolvedTarget,
    penalty: PenaltyModel,
) -> CalculationResult:
    """Price termination of every sector in ``sectors``.

    A single sector failure aborts the whole operator: partial totals are
    never reported in calculation mode.
    """
    fees = [evaluate_sector(sector, resolved, penalty) for sector in sectors]
    expired = sum(1 for fee in fees if fee.is_expired)

    return CalculationResult(
        operator_id=operator_id,
        target_epoch=resolved.target_epoch,
        current_epoch=resolved.current_epoch,
        is_estimate=resolved.is_estimate,
        total_sectors=len(fees),
        active_sectors=len(fees) - expired,
        expired_sectors=expired,
        total_fee=sum(fee.termination_fee for fee in fees if not fee.is_expired),
        sector_results=tuple(fee.to_result() for fee in fees),
    )
