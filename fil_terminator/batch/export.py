"""CSV and JSON writers for batch results.

CSV output carries FIL amounts for spreadsheets. JSON output carries the
attoFIL integers as produced by ``model_dump(mode="json")``.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from fil_terminator.core.domain.units import fil_amount

if TYPE_CHECKING:
    from fil_terminator.core.domain.types import CalculationResult, StrategyResult
    from fil_terminator.core.fees.expiration import ExpirationDistribution

CALCULATION_HEADER = [
    "MinerID",
    "Epoch",
    "Status",
    "TotalSectors",
    "ActiveSectors",
    "ExpiredSectors",
    "TotalFee(FIL)",
    "Error",
]

STRATEGY_HEADER = [
    "MinerID",
    "TerminationEpoch",
    "Status",
    "TotalSectors",
    "TerminateSectors",
    "ExpireSectors",
    "OmittedSectors",
    "TerminationFee(FIL)",
    "ExpirationFee(FIL)",
    "TotalFee(FIL)",
    "Error",
]


def _error_text(result: CalculationResult | StrategyResult) -> str:
    return "" if result.error is None else str(result.error)


def write_calculation_csv(path: str | Path, results: Sequence[CalculationResult]) -> None:
    with Path(path).open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CALCULATION_HEADER)
        for r in results:
            writer.writerow(
                [
                    r.operator_id,
                    r.target_epoch,
                    r.status,
                    r.total_sectors,
                    r.active_sectors,
                    r.expired_sectors,
                    fil_amount(r.total_fee),
                    _error_text(r),
                ]
            )


def write_strategy_csv(path: str | Path, results: Sequence[StrategyResult]) -> None:
    with Path(path).open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(STRATEGY_HEADER)
        for r in results:
            writer.writerow(
                [
                    r.operator_id,
                    r.termination_epoch,
                    r.status,
                    r.total_sectors,
                    r.terminate_sectors,
                    r.expire_sectors,
                    r.omitted_sectors,
                    fil_amount(r.termination_fee),
                    fil_amount(r.expiration_fee),
                    fil_amount(r.total_fee),
                    _error_text(r),
                ]
            )


def write_expiration_csv(path: str | Path, dist: ExpirationDistribution) -> None:
    with Path(path).open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["=== Overall Distribution ==="])
        writer.writerow(["Days from now", "Sectors", "Miners"])
        for b in dist.buckets:
            writer.writerow([b.days, b.sectors, b.operators])

        writer.writerow([""])
        writer.writerow(["=== Per Miner Details ==="])
        for op in dist.operators:
            writer.writerow([f"Miner: {op.operator_id}"])
            writer.writerow(["Days from now", "Sectors"])
            for days, count in op.buckets.items():
                writer.writerow([days, count])
            writer.writerow([""])


def write_results_json(
    path: str | Path,
    results: Sequence[CalculationResult] | Sequence[StrategyResult],
) -> None:
    """Write results as a JSON array, one object per result."""
    payload = [r.model_dump(mode="json", exclude_none=True) for r in results]
    with Path(path).open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")
