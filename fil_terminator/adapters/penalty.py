"""Protocol penalty model.

Implements the miner actor fee schedule introduced with actors v16
(FIP-0098) on plain Python integers:

- continued fault fee: expected block reward of the sector's QA power over
  3.51 days, extrapolated from the smoothed reward and network power
  estimates;
- termination fee: the larger of 8.5% of initial pledge (scaled linearly by
  sector age up to 140 days) and 105% of the continued fault fee.

Smoothed estimates and intermediate values are Q.128 fixed-point integers.
Shifts floor toward negative infinity and divisions are floor divisions,
which matches the on-chain arithmetic for the value ranges involved.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Context, Decimal

from fil_terminator.core.domain.epochs import EPOCHS_PER_DAY
from fil_terminator.core.domain.errors import InvalidInputError, UnsupportedVersionError
from fil_terminator.core.domain.types import SmoothedEstimate

PRECISION = 128

# 2^-50 in Q.128; below this the power velocity is treated as zero.
EPSILON = 1 << 78

CONTINUED_FAULT_FACTOR_NUM = 351
CONTINUED_FAULT_FACTOR_DENOM = 100
CONTINUED_FAULT_PROJECTION_PERIOD = (
    EPOCHS_PER_DAY * CONTINUED_FAULT_FACTOR_NUM
) // CONTINUED_FAULT_FACTOR_DENOM

TERM_FEE_PLEDGE_MULTIPLE_NUM = 85
TERM_FEE_PLEDGE_MULTIPLE_DENOM = 1000
TERM_FEE_MAX_FAULT_FEE_MULTIPLE_NUM = 105
TERM_FEE_MAX_FAULT_FEE_MULTIPLE_DENOM = 100
TERM_FEE_MAX_AGE = 140 * EPOCHS_PER_DAY

MIN_ACTORS_VERSION = 16

# First network version shipping each actors version.
_ACTORS_BY_NETWORK: tuple[tuple[int, int], ...] = (
    (27, 17),
    (25, 16),
    (24, 15),
    (23, 14),
    (22, 13),
    (21, 12),
    (19, 11),
    (18, 10),
    (17, 9),
    (16, 8),
)
_LATEST_KNOWN_NETWORK = 27

_LN_CONTEXT = Context(prec=100)
_Q128 = Decimal(1 << PRECISION)


def actors_version_for_network(network_version: int) -> int:
    if network_version > _LATEST_KNOWN_NETWORK:
        raise UnsupportedVersionError(f"unknown network version {network_version}")
    for first_network, actors in _ACTORS_BY_NETWORK:
        if network_version >= first_network:
            return actors
    raise UnsupportedVersionError(f"network version {network_version} predates actors v8")


def _ln_q128(value: int) -> int:
    if value <= 0:
        raise InvalidInputError(f"logarithm of non-positive Q.128 value {value}")
    real = _LN_CONTEXT.divide(Decimal(value), _Q128)
    scaled = _LN_CONTEXT.multiply(real.ln(_LN_CONTEXT), _Q128)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def extrapolated_cum_sum_of_ratio(
    delta: int,
    relative_start: int,
    numerator: SmoothedEstimate,
    denominator: SmoothedEstimate,
) -> int:
    """Integral of numerator/denominator over ``delta`` epochs, in Q.128."""
    delta_t = delta << PRECISION
    t0 = relative_start << PRECISION

    pos_1, velo_1 = numerator.position, numerator.velocity
    pos_2, velo_2 = denominator.position, denominator.velocity

    squared_velo_2 = (velo_2 * velo_2) >> PRECISION

    if squared_velo_2 > EPSILON:
        x2a = ((t0 * velo_2) >> PRECISION) + pos_2
        x2b = ((delta_t * velo_2) >> PRECISION) + x2a
        x2a = _ln_q128(x2a)
        x2b = _ln_q128(x2b)

        m1 = ((x2b - x2a) * pos_1 * velo_2) >> PRECISION
        m2_l = (x2a - x2b) * pos_2
        m2_r = velo_2 * delta_t
        m2 = ((m2_l + m2_r) * velo_1) >> PRECISION
        return (m2 + m1) // squared_velo_2

    half_delta = delta_t >> 1
    x1m = velo_1 * (t0 + half_delta)
    x1m = (x1m >> PRECISION) + pos_1
    return (x1m * delta_t) // pos_2


def expected_reward_for_power(
    reward: SmoothedEstimate,
    power: SmoothedEstimate,
    qa_power: int,
    projection_duration: int,
) -> int:
    if (power.position >> PRECISION) == 0:
        return reward.position >> PRECISION

    per_unit = extrapolated_cum_sum_of_ratio(projection_duration, 0, reward, power)
    return max((qa_power * per_unit) >> PRECISION, 0)


class ProtocolPenaltyModel:
    """PenaltyModel backed by the on-chain fee schedule."""

    def __init__(self, min_actors_version: int = MIN_ACTORS_VERSION) -> None:
        self._min_actors_version = min_actors_version

    def _check_version(self, network_version: int) -> None:
        actors = actors_version_for_network(network_version)
        if actors < self._min_actors_version:
            raise UnsupportedVersionError(
                f"network version {network_version} runs actors v{actors}; "
                f"v{self._min_actors_version}+ required"
            )

    def continued_fault_fee(
        self,
        network_version: int,
        reward: SmoothedEstimate,
        power: SmoothedEstimate,
        qa_power: int,
    ) -> int:
        self._check_version(network_version)
        return expected_reward_for_power(
            reward, power, qa_power, CONTINUED_FAULT_PROJECTION_PERIOD
        )

    def termination_fee(
        self,
        network_version: int,
        initial_pledge: int,
        sector_age: int,
        fault_fee: int,
    ) -> int:
        self._check_version(network_version)
        capped_age = min(max(sector_age, 0), TERM_FEE_MAX_AGE)

        simple_fee = (initial_pledge * TERM_FEE_PLEDGE_MULTIPLE_NUM * capped_age) // (
            TERM_FEE_PLEDGE_MULTIPLE_DENOM * TERM_FEE_MAX_AGE
        )
        fault_fee_multiple = (
            fault_fee * TERM_FEE_MAX_FAULT_FEE_MULTIPLE_NUM
        ) // TERM_FEE_MAX_FAULT_FEE_MULTIPLE_DENOM

        return max(simple_fee, fault_fee_multiple)
