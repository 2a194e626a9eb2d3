from __future__ import annotations

from typing import Protocol

from fil_terminator.core.domain.types import SmoothedEstimate


class PenaltyModel(Protocol):
    """Protocol-defined penalty formulas.

    Implementations must be pure and deterministic. They may raise
    UnsupportedVersionError for network versions they do not cover.
    """

    def continued_fault_fee(
        self,
        network_version: int,
        reward: SmoothedEstimate,
        power: SmoothedEstimate,
        qa_power: int,
    ) -> int:
        """Per-day penalty accrued by a faulty sector of ``qa_power``."""

    def termination_fee(
        self,
        network_version: int,
        initial_pledge: int,
        sector_age: int,
        fault_fee: int,
    ) -> int:
        """Lump penalty for terminating a sector of ``sector_age`` epochs."""
