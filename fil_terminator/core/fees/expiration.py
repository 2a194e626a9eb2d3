"""Sector expiration distribution.

Sectors are bucketed by whole days between the reference epoch and their
expiration. Buckets truncate toward zero, so a sector expiring half a day
after the reference lands in bucket 0 ("today") and negative buckets hold
sectors that already expired.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from fil_terminator.core.domain.epochs import epochs_to_days

if TYPE_CHECKING:
    from fil_terminator.core.domain.errors import TaskError
    from fil_terminator.core.domain.types import Sector


def expiration_bucket(expiration: int, reference_epoch: int) -> int:
    return int(epochs_to_days(expiration - reference_epoch))


@dataclass(frozen=True, slots=True)
class OperatorExpiration:
    operator_id: str
    reference_epoch: int
    total_sectors: int = 0
    # days from reference -> sector count
    buckets: dict[int, int] = field(default_factory=dict)
    error: TaskError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class DayBucket:
    days: int
    sectors: int
    operators: int


@dataclass(frozen=True, slots=True)
class ExpirationDistribution:
    reference_epoch: int
    buckets: list[DayBucket]
    operators: list[OperatorExpiration]
    failed: list[OperatorExpiration]

    @property
    def total_sectors(self) -> int:
        return sum(b.sectors for b in self.buckets)


def operator_expiration(
    operator_id: str,
    sectors: Iterable[Sector],
    reference_epoch: int,
) -> OperatorExpiration:
    buckets: dict[int, int] = {}
    total = 0
    for sector in sectors:
        day = expiration_bucket(sector.expiration, reference_epoch)
        buckets[day] = buckets.get(day, 0) + 1
        total += 1

    return OperatorExpiration(
        operator_id=operator_id,
        reference_epoch=reference_epoch,
        total_sectors=total,
        buckets=dict(sorted(buckets.items())),
    )


def aggregate_expirations(
    results: Iterable[OperatorExpiration],
    reference_epoch: int,
) -> ExpirationDistribution:
    """Merge per-operator buckets; failed operators are reported, not counted."""
    sectors_by_day: dict[int, int] = {}
    operators_by_day: dict[int, set[str]] = {}
    succeeded: list[OperatorExpiration] = []
    failed: list[OperatorExpiration] = []

    for result in results:
        if not result.ok:
            failed.append(result)
            continue
        succeeded.append(result)
        for day, count in result.buckets.items():
            sectors_by_day[day] = sectors_by_day.get(day, 0) + count
            operators_by_day.setdefault(day, set()).add(result.operator_id)

    buckets = [
        DayBucket(days=day, sectors=sectors_by_day[day], operators=len(operators_by_day[day]))
        for day in sorted(sectors_by_day)
    ]

    return ExpirationDistribution(
        reference_epoch=reference_epoch,
        buckets=buckets,
        operators=succeeded,
        failed=failed,
    )
