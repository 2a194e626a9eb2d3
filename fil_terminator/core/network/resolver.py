"""Target epoch resolution.

Decides, per request, whether fees are priced against finalized historical
state or extrapolated from the current head:

- HISTORICAL: target <= head. State is read from the snapshot at exactly the
  target epoch; signals are used as-is.
- PROJECTED: target > head. State is read from the head snapshot and the
  reward/power signals are projected by ``target - head`` epochs.

A target of 0 means "now" and is rewritten to the head epoch first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fil_terminator.core.domain.errors import InvalidInputError
from fil_terminator.core.network.projector import project_network_params

if TYPE_CHECKING:
    from fil_terminator.core.domain.types import SmoothedEstimate
    from fil_terminator.core.network.projection_config import ProjectionConfig
    from fil_terminator.core.ports.chain_state import ChainState, SnapshotHandle

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """Pricing context shared by every sector of one request."""

    snapshot: SnapshotHandle
    target_epoch: int
    current_epoch: int
    is_estimate: bool
    network_version: int
    reward: SmoothedEstimate
    power: SmoothedEstimate

    @property
    def projection_offset(self) -> int:
        return self.target_epoch - self.current_epoch if self.is_estimate else 0


def resolve_target(
    chain: ChainState,
    target_epoch: int,
    projection: ProjectionConfig | None = None,
) -> ResolvedTarget:
    """Resolve ``target_epoch`` into a snapshot and (possibly projected) signals.

    Raises SnapshotUnavailableError when a historical snapshot cannot be
    loaded; callers treat that as fatal for the current request only.
    """
    if target_epoch < 0:
        raise InvalidInputError(f"target epoch cannot be negative: {target_epoch}")

    current_epoch = chain.current_height()
    target = target_epoch if target_epoch != 0 else current_epoch
    is_estimate = target > current_epoch

    snapshot = chain.snapshot_at(current_epoch if is_estimate else target)

    network_version = chain.network_version(snapshot)
    reward = chain.reward_signal(snapshot)
    power = chain.power_signal(snapshot)

    if is_estimate:
        offset = target - current_epoch
        reward, power = project_network_params(reward, power, offset, projection)
        LOGGER.debug(
            "Projected network parameters",
            extra={"target_epoch": target, "current_epoch": current_epoch, "offset": offset},
        )

    return ResolvedTarget(
        snapshot=snapshot,
        target_epoch=target,
        current_epoch=current_epoch,
        is_estimate=is_estimate,
        network_version=network_version,
        reward=reward,
        power=power,
    )
