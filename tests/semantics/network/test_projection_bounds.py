"""
Semantic test: network parameter projection.

Invariant:
Projection is deterministic, leaves signals untouched for non-positive
offsets, grows power linearly and decays reward linearly down to the
configured floor.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import pytest
from pydantic import ValidationError

from fil_terminator.core.domain.types import SmoothedEstimate
from fil_terminator.core.network.projection_config import ProjectionConfig
from fil_terminator.core.network.projector import (
    decay_factor,
    growth_factor,
    project_network_params,
)

REWARD = SmoothedEstimate(position=1_000_000, velocity=-2_000)
POWER = SmoothedEstimate(position=5_000_000, velocity=10_000)


@pytest.mark.parametrize("offset", [0, -10])
def test_non_positive_offset_is_identity(offset: int) -> None:
    assert project_network_params(REWARD, POWER, offset) == (REWARD, POWER)


def test_default_rates_scale_both_signals() -> None:
    reward, power = project_network_params(REWARD, POWER, 1000)

    # growth 1.1, decay 0.95
    assert power == SmoothedEstimate(position=5_500_000, velocity=11_000)
    assert reward == SmoothedEstimate(position=950_000, velocity=-1_900)


def test_reward_decay_is_floored() -> None:
    cfg = ProjectionConfig(reward_decay_rate=0.01, min_reward_factor=0.25)

    assert decay_factor(1_000_000, cfg) == 0.25
    reward, _ = project_network_params(REWARD, POWER, 1_000_000, cfg)
    assert reward.position == 250_000


def test_reward_never_below_ten_percent() -> None:
    ten_years = 10 * 365 * 2880

    reward, power = project_network_params(REWARD, POWER, ten_years)

    assert reward.position == REWARD.position // 10
    assert power.position > POWER.position


def test_growth_is_linear() -> None:
    cfg = ProjectionConfig(power_growth_rate=0.001)

    assert growth_factor(0, cfg) == 1.0
    assert growth_factor(500, cfg) == pytest.approx(1.5)


def test_projection_is_repeatable() -> None:
    first = project_network_params(REWARD, POWER, 12_345)
    second = project_network_params(REWARD, POWER, 12_345)

    assert first == second


def test_projection_config_validation() -> None:
    with pytest.raises(ValidationError):
        ProjectionConfig(min_reward_factor=0)
    with pytest.raises(ValidationError):
        ProjectionConfig(power_growth_rate=-0.1)
    with pytest.raises(ValidationError):
        ProjectionConfig.from_json_obj({"unknown": 1})
