from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

from fil_terminator.core.domain.epochs import epochs_to_days
from fil_terminator.core.domain.units import fil_amount, format_fil

if TYPE_CHECKING:
    from fil_terminator.core.domain.types import CalculationResult, StrategyResult
    from fil_terminator.core.fees.expiration import ExpirationDistribution
    from fil_terminator.core.fees.strategy import FleetSummary

_ERROR_WIDTH = 20


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CalculationSummary:
    operators: int
    successful: int
    failed: int
    total_sectors: int
    total_fee: int


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def summarize_calculations(results: Iterable[CalculationResult]) -> CalculationSummary:
    results = list(results)
    ok = [r for r in results if r.error is None]
    return CalculationSummary(
        operators=len(results),
        successful=len(ok),
        failed=len(results) - len(ok),
        total_sectors=sum(r.total_sectors for r in ok),
        total_fee=sum(r.total_fee for r in ok),
    )


def _short_error(result: CalculationResult | StrategyResult) -> str:
    if result.error is None:
        return ""
    message = str(result.error)
    if len(message) > _ERROR_WIDTH:
        return message[:_ERROR_WIDTH] + "..."
    return message


# ---------------------------------------------------------------------------
# Pretty printers
# ---------------------------------------------------------------------------

def print_calculation_result(result: CalculationResult, *, verbose: bool = False) -> None:
    if result.is_estimate:
        ahead = epochs_to_days(result.target_epoch - result.current_epoch)
        print(
            f"Estimation mode: predicting fees for epoch {result.target_epoch} "
            f"(+{ahead:.1f} days) based on data from epoch {result.current_epoch}"
        )
    else:
        print(f"Calculation epoch: {result.target_epoch}")

    if verbose:
        status = "estimated" if result.is_estimate else "historical"
        print("Sector details:")
        for s in result.sector_results:
            if s.is_expired:
                print(f"  Sector {s.sector_number}: EXPIRED (expired {s.expired_days or 0.0:.1f} days ago)")
            else:
                print(
                    f"  Sector {s.sector_number}: {format_fil(s.fee)} "
                    f"(age: {epochs_to_days(s.age):.1f} days, {status})"
                )

    print(f"Total sectors: {result.total_sectors}")
    if result.expired_sectors > 0:
        print(f"Expired sectors: {result.expired_sectors}")
        print(f"Active sectors: {result.active_sectors}")
    print(f"Total termination fee: {format_fil(result.total_fee)}")


def print_calculation_table(results: Sequence[CalculationResult]) -> None:
    print("\n=== Results ===")
    print(
        f"{'MinerID':<12} {'Epoch':<10} {'Status':<8} {'Total':<6} "
        f"{'Active':<6} {'Expired':<8} {'Fee(FIL)':<15} Error"
    )
    print("-" * 80)
    for r in results:
        print(
            f"{r.operator_id:<12} {r.target_epoch:<10} {r.status:<8} {r.total_sectors:<6} "
            f"{r.active_sectors:<6} {r.expired_sectors:<8} {fil_amount(r.total_fee):<15} "
            f"{_short_error(r)}"
        )


def print_calculation_summary(summary: CalculationSummary) -> None:
    print("\n=== Summary ===")
    print(f"Total miners processed: {summary.operators}")
    print(f"Successful calculations: {summary.successful}")
    print(f"Failed calculations: {summary.failed}")
    print(f"Total termination fee: {format_fil(summary.total_fee)}")


def print_strategy_table(results: Sequence[StrategyResult], *, verbose: bool = False) -> None:
    print("\n=== Strategy Results ===")
    print(
        f"{'MinerID':<12} {'Epoch':<10} {'Status':<8} {'Total':<6} {'Term.':<6} {'Exp.':<6} "
        f"{'TermFee(FIL)':<25} {'ExpFee(FIL)':<25} {'TotalFee(FIL)':<25} Error"
    )
    print("-" * 150)
    for r in results:
        print(
            f"{r.operator_id:<12} {r.termination_epoch:<10} {r.status:<8} {r.total_sectors:<6} "
            f"{r.terminate_sectors:<6} {r.expire_sectors:<6} "
            f"{fil_amount(r.termination_fee):<25} {fil_amount(r.expiration_fee):<25} "
            f"{fil_amount(r.total_fee):<25} {_short_error(r)}"
        )
        if r.omitted_sectors:
            print(f"  Warning: {r.omitted_sectors} sectors omitted (pricing failed)")
        if verbose and r.error is None and r.sector_details:
            print("  Sector breakdown:")
            for d in r.sector_details:
                print(
                    f"    {d.sector_number}: {d.action} ({d.remaining_days:.1f}d) "
                    f"-> {format_fil(d.recommended_fee)}"
                )


def print_fleet_summary(summary: FleetSummary) -> None:
    print("\n=== Summary ===")
    print(f"Total miners processed: {summary.operators}")
    print(f"Successful calculations: {summary.successful}")
    print(f"Failed calculations: {summary.failed}")
    print(f"Total sectors analyzed: {summary.total_sectors}")
    print(f"Sectors to terminate: {summary.terminate_sectors} ({summary.terminate_pct:.1f}%)")
    print(f"Sectors to let expire: {summary.expire_sectors} ({summary.expire_pct:.1f}%)")
    if summary.omitted_sectors:
        print(f"Sectors omitted: {summary.omitted_sectors}")
    print(f"Total termination fees: {format_fil(summary.termination_fee)}")
    print(f"Total expiration fees: {format_fil(summary.expiration_fee)}")
    print(f"Combined total fees: {format_fil(summary.combined_fee)}")
    if summary.savings > 0:
        print(
            f"Strategy savings vs full termination: {format_fil(summary.savings)} "
            f"({summary.savings_pct:.2f}%)"
        )


def _day_label(days: int) -> str:
    if days < 0:
        return f"-{-days} (expired)"
    if days == 0:
        return "0 (today)"
    return f"+{days}"


def print_expiration_distribution(dist: ExpirationDistribution, *, verbose: bool = False) -> None:
    print("\n=== Sector Expiration Distribution ===")

    if verbose:
        print("\n--- Per Miner Details ---")
        for op in dist.operators:
            print(f"\nMiner: {op.operator_id} (Total sectors: {op.total_sectors})")
            for days, count in op.buckets.items():
                if days < 0:
                    print(f"  Expired {-days} days ago: {count} sectors")
                elif days == 0:
                    print(f"  Expires today: {count} sectors")
                else:
                    print(f"  Expires in {days} days: {count} sectors")

    print("\n--- Overall Distribution ---")
    print(f"{'Days from now':<15} {'Sectors':<10} {'Miners':<10}")
    print("-" * 40)
    for b in dist.buckets:
        print(f"{_day_label(b.days):<15} {b.sectors:<10} {b.operators:<10}")

    print(f"\nTotal sectors: {dist.total_sectors}")
    print(f"Total miners: {len(dist.operators)}")
    if dist.failed:
        print(f"Failed miners: {len(dist.failed)}")
        for op in dist.failed:
            print(f"  - {op.operator_id}: {op.error}")
