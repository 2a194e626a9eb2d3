"""
Semantic test: batch input files.

Invariant:
Structural problems fail the whole read and name their line before any
chain call is made. A malformed operator id is not structural: it reaches
the runner and comes back as that row's failed result.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

from pathlib import Path

import pytest

from fil_terminator.batch.inputs import (
    parse_operator_input,
    parse_operator_list,
    read_epoch_tasks,
    read_operator_ids,
)
from fil_terminator.batch.runner import batch_calculate, batch_strategy
from fil_terminator.core.domain.errors import ErrorKind, InvalidInputError
from fil_terminator.core.domain.types import StrategyTask

DAY = 2880


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_epoch_tasks_with_header(tmp_path: Path) -> None:
    path = _write(tmp_path / "tasks.csv", "minerid,epoch\nf01000,4500000\n\nf02000, 0\n")

    requests = read_epoch_tasks(path)

    assert [(r.operator_id, r.target_epoch, r.sector_numbers) for r in requests] == [
        ("f01000", 4_500_000, ()),
        ("f02000", 0, ()),
    ]


def test_epoch_tasks_without_header(tmp_path: Path) -> None:
    path = _write(tmp_path / "tasks.csv", "f01000,10\n")

    assert [r.target_epoch for r in read_epoch_tasks(path)] == [10]


@pytest.mark.parametrize(
    ("body", "line"),
    [
        ("minerid,epoch\nf01000\n", "line 2"),
        ("f01000,abc\n", "line 1"),
        ("f01000,1\nf01000,-5\n", "line 2"),
    ],
)
def test_malformed_rows_name_the_line(tmp_path: Path, body: str, line: str) -> None:
    path = _write(tmp_path / "tasks.csv", body)

    with pytest.raises(InvalidInputError, match=line):
        read_epoch_tasks(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError, match="not found"):
        read_epoch_tasks(tmp_path / "missing.csv")


def test_operator_ids_from_text(tmp_path: Path) -> None:
    path = _write(tmp_path / "miners.txt", "# fleet\nf01000\n\n  f02000  \n")

    assert read_operator_ids(path) == ["f01000", "f02000"]


def test_operator_ids_from_csv_column(tmp_path: Path) -> None:
    path = _write(tmp_path / "miners.csv", "region,Miner\neu,f01000\nus,\nap,f03000\n")

    assert read_operator_ids(path) == ["f01000", "f03000"]


def test_csv_without_miner_column(tmp_path: Path) -> None:
    path = _write(tmp_path / "miners.csv", "id\nf01000\n")

    with pytest.raises(InvalidInputError, match="minerid"):
        read_operator_ids(path)


def test_ids_are_read_as_written(tmp_path: Path) -> None:
    text = _write(tmp_path / "miners.txt", "f01000\nbogus\n")
    table = _write(tmp_path / "miners.csv", "minerid\nnot-a-miner\nf02000\n")

    assert read_operator_ids(text) == ["f01000", "bogus"]
    assert read_operator_ids(table) == ["not-a-miner", "f02000"]


def test_malformed_id_becomes_failed_row(tmp_path: Path, chain_factory, sector_factory, penalty, head) -> None:
    chain = chain_factory(
        {
            "f01234": [sector_factory(1, expiration=head + 90 * DAY, pledge=500)],
            "f05678": [sector_factory(1, expiration=head + 90 * DAY, pledge=700)],
        }
    )
    path = _write(tmp_path / "tasks.csv", "f01234,0\nnot-a-miner,0\nf05678,0\n")

    results = batch_calculate(chain, penalty, read_epoch_tasks(path), workers=2)

    assert [(r.operator_id, r.status) for r in results] == [
        ("f01234", "success"),
        ("not-a-miner", "failed"),
        ("f05678", "success"),
    ]
    assert [r.total_fee for r in results] == [500, 0, 700]
    assert results[1].error.kind is ErrorKind.INVALID_INPUT
    assert "invalid miner address" in results[1].error.message


def test_malformed_id_in_strategy_list(tmp_path: Path, chain_factory, sector_factory, penalty, head) -> None:
    chain = chain_factory({"f01000": [sector_factory(1, expiration=head + 90 * DAY)]})
    path = _write(tmp_path / "miners.txt", "f01000\nbogus\n")
    tasks = [StrategyTask(operator_id=operator_id) for operator_id in read_operator_ids(path)]

    results = batch_strategy(chain, penalty, tasks, workers=2)

    assert [r.error is None for r in results] == [True, False]
    assert results[1].operator_id == "bogus"
    assert results[1].error.kind is ErrorKind.INVALID_INPUT


def test_operator_input_is_file_or_single_id(tmp_path: Path) -> None:
    path = _write(tmp_path / "miners.txt", "f01000\nf02000\n")

    assert parse_operator_input(str(path)) == ["f01000", "f02000"]
    assert parse_operator_input("f07777") == ["f07777"]
    with pytest.raises(InvalidInputError):
        parse_operator_input("no-such-file-or-id")


def test_operator_list() -> None:
    assert parse_operator_list("f01000, f02000,,") == ["f01000", "f02000"]
    with pytest.raises(InvalidInputError):
        parse_operator_list("f01000,x")
