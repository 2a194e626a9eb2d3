"""
Semantic test: result export and console summaries.

Invariant:
CSV rows follow input order with FIL amounts; JSON keeps attoFIL integers
and omits absent errors. Console summaries count failures separately.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import csv
import json
from pathlib import Path

from fil_terminator.batch import export
from fil_terminator.batch.summary import (
    print_calculation_summary,
    print_strategy_table,
    summarize_calculations,
)
from fil_terminator.core.domain.errors import ErrorKind, TaskError
from fil_terminator.core.domain.types import CalculationResult, SectorResult, StrategyResult, StrategyTask

FIL = 10**18


def _results() -> list[CalculationResult]:
    ok = CalculationResult(
        operator_id="f01000",
        target_epoch=100,
        current_epoch=100,
        total_sectors=2,
        active_sectors=1,
        expired_sectors=1,
        total_fee=FIL + FIL // 4,
        sector_results=(
            SectorResult(sector_number=1, fee=FIL + FIL // 4, age=50),
            SectorResult(sector_number=2, is_expired=True, expired_days=0.5),
        ),
    )
    failed = CalculationResult.failed(
        operator_id="f02000",
        target_epoch=7,
        error=TaskError(kind=ErrorKind.SNAPSHOT_UNAVAILABLE, message="no tipset at epoch 7"),
    )
    return [ok, failed]


def test_calculation_csv(tmp_path: Path) -> None:
    path = tmp_path / "out.csv"

    export.write_calculation_csv(path, _results())

    with path.open(encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == export.CALCULATION_HEADER
    assert rows[1] == ["f01000", "100", "success", "2", "1", "1", "1.25", ""]
    assert rows[2] == [
        "f02000",
        "7",
        "failed",
        "0",
        "0",
        "0",
        "0",
        "snapshot_unavailable: no tipset at epoch 7",
    ]


def test_strategy_csv_has_omitted_column(tmp_path: Path) -> None:
    result = StrategyResult(
        operator_id="f01000",
        termination_epoch=10,
        total_sectors=2,
        omitted_sectors=2,
        omitted_sector_numbers=(4, 5),
    )
    path = tmp_path / "strategy.csv"

    export.write_strategy_csv(path, [result])

    with path.open(encoding="utf-8", newline="") as f:
        header, row = list(csv.reader(f))
    assert row[header.index("OmittedSectors")] == "2"
    assert row[header.index("Status")] == "success"


def test_results_json_keeps_atto_integers(tmp_path: Path) -> None:
    path = tmp_path / "out.json"

    export.write_results_json(path, _results())

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload[0]["total_fee"] == FIL + FIL // 4
    assert "error" not in payload[0]
    assert payload[1]["error"] == {"kind": "snapshot_unavailable", "message": "no tipset at epoch 7"}


def test_calculation_summary_counts(capsys) -> None:
    summary = summarize_calculations(_results())

    assert (summary.operators, summary.successful, summary.failed) == (2, 1, 1)
    assert summary.total_fee == FIL + FIL // 4

    print_calculation_summary(summary)
    out = capsys.readouterr().out
    assert "Failed calculations: 1" in out
    assert "Total termination fee: 1.25 FIL" in out


def test_strategy_table_warns_about_omissions(capsys) -> None:
    omitted = StrategyResult(
        operator_id="f01000",
        termination_epoch=10,
        total_sectors=1,
        omitted_sectors=1,
        omitted_sector_numbers=(3,),
    )
    failed = StrategyResult.failed(
        task=StrategyTask(operator_id="f02000"),
        error=TaskError(kind=ErrorKind.EXTERNAL_CALL_FAILURE, message="connection refused by node"),
    )

    print_strategy_table([omitted, failed])

    out = capsys.readouterr().out
    assert "1 sectors omitted" in out
    assert "external_call_failur..." in out
