"""Per-sector fee evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fil_terminator.core.domain.epochs import EPOCHS_PER_DAY, epochs_to_days
from fil_terminator.core.domain.errors import ExternalCallError, TerminatorError
from fil_terminator.core.domain.types import SectorResult

if TYPE_CHECKING:
    from fil_terminator.core.domain.types import Sector
    from fil_terminator.core.network.resolver import ResolvedTarget
    from fil_terminator.core.ports.penalty_model import PenaltyModel


@dataclass(frozen=True, slots=True)
class SectorFee:
    """Fee breakdown of one sector at the resolved target epoch.

    Expired sectors carry ``expired_days`` and zero fees; the penalty model
    is never consulted for them.
    """

    sector_number: int
    expiration: int
    is_expired: bool
    age: int = 0
    expired_days: float | None = None
    remaining_epochs: int = 0
    fault_fee: int = 0
    termination_fee: int = 0
    expiration_cost: int = 0

    def to_result(self) -> SectorResult:
        return SectorResult(
            sector_number=self.sector_number,
            fee=self.termination_fee,
            age=self.age,
            is_expired=self.is_expired,
            expired_days=self.expired_days,
        )


def evaluate_sector(
    sector: Sector,
    resolved: ResolvedTarget,
    penalty: PenaltyModel,
) -> SectorFee:
    """Price termination and natural expiration of ``sector``.

    Penalty model failures propagate. TerminatorErrors keep their kind, any
    other exception is wrapped as ExternalCallError.
    """
    target = resolved.target_epoch

    if target >= sector.expiration:
        return SectorFee(
            sector_number=sector.sector_number,
            expiration=sector.expiration,
            is_expired=True,
            expired_days=epochs_to_days(target - sector.expiration),
        )

    age = target - sector.activation
    remaining = sector.expiration - target

    try:
        fault_fee = penalty.continued_fault_fee(
            resolved.network_version,
            resolved.reward,
            resolved.power,
            sector.qa_power,
        )
        termination_fee = penalty.termination_fee(
            resolved.network_version,
            sector.initial_pledge,
            age,
            fault_fee,
        )
    except TerminatorError:
        raise
    except Exception as exc:
        raise ExternalCallError(
            f"failed to calculate fees for sector {sector.sector_number}: {exc}"
        ) from exc

    return SectorFee(
        sector_number=sector.sector_number,
        expiration=sector.expiration,
        is_expired=False,
        age=age,
        remaining_epochs=remaining,
        fault_fee=fault_fee,
        termination_fee=termination_fee,
        expiration_cost=fault_fee * (remaining // EPOCHS_PER_DAY),
    )
