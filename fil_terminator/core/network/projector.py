"""Network parameter projection.

Projects the smoothed reward and power estimates forward by an epoch offset
using linear growth (power) and decay (reward) assumptions. This is a
deterministic placeholder for estimating future fees, not an economic model.

Scaling goes through an integer milli-factor so results are reproducible:

    value * int(factor * 1000) // 1000
"""

from __future__ import annotations

from fil_terminator.core.domain.types import SmoothedEstimate
from fil_terminator.core.network.projection_config import ProjectionConfig

_MILLI: int = 1000


def _scale(estimate: SmoothedEstimate, factor: float) -> SmoothedEstimate:
    milli_factor = int(factor * _MILLI)
    return SmoothedEstimate(
        position=estimate.position * milli_factor // _MILLI,
        velocity=estimate.velocity * milli_factor // _MILLI,
    )


def growth_factor(offset_epochs: int, config: ProjectionConfig) -> float:
    return 1.0 + config.power_growth_rate * offset_epochs


def decay_factor(offset_epochs: int, config: ProjectionConfig) -> float:
    decay = 1.0 - config.reward_decay_rate * offset_epochs
    return max(decay, config.min_reward_factor)


def project_network_params(
    reward: SmoothedEstimate,
    power: SmoothedEstimate,
    offset_epochs: int,
    config: ProjectionConfig | None = None,
) -> tuple[SmoothedEstimate, SmoothedEstimate]:
    """Return ``(reward, power)`` projected ``offset_epochs`` into the future.

    Non-positive offsets return the inputs unchanged.
    """
    if offset_epochs <= 0:
        return reward, power

    cfg = config if config is not None else ProjectionConfig()

    return (
        _scale(reward, decay_factor(offset_epochs, cfg)),
        _scale(power, growth_factor(offset_epochs, cfg)),
    )
