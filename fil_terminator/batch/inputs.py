"""Batch input readers.

Structural problems (a missing column, an unreadable epoch) abort the read
with an InvalidInputError naming the 1-based line, before any chain call is
made. Operator ids are passed through as written: a malformed id is reported
by the runner as that row's failed result, next to the rows that succeed.
"""

from __future__ import annotations

import csv
from pathlib import Path

from pydantic import ValidationError

from fil_terminator.core.domain.errors import InvalidInputError
from fil_terminator.core.domain.types import CalculationRequest, validate_operator_id

_OPERATOR_COLUMNS = ("minerid", "miner")


def _read_rows(path: Path) -> list[list[str]]:
    if not path.is_file():
        raise InvalidInputError(f"input file not found: {path}")
    with path.open("r", encoding="utf-8", newline="") as f:
        return [row for row in csv.reader(f)]


def read_epoch_tasks(path: str | Path) -> list[CalculationRequest]:
    """Read ``minerid,epoch`` rows into calculation requests (all sectors)."""
    rows = _read_rows(Path(path))
    requests: list[CalculationRequest] = []

    for line, row in enumerate(rows, start=1):
        if not row or all(not cell.strip() for cell in row):
            continue
        if line == 1 and row[0].strip().lower() in _OPERATOR_COLUMNS:
            continue
        if len(row) < 2:
            raise InvalidInputError(f"invalid CSV format at line {line}: expected 2 columns")

        operator_id = row[0].strip()
        epoch_text = row[1].strip()
        try:
            epoch = int(epoch_text)
        except ValueError as exc:
            raise InvalidInputError(f"invalid epoch at line {line}: {epoch_text!r}") from exc

        try:
            requests.append(CalculationRequest(operator_id=operator_id, target_epoch=epoch))
        except ValidationError as exc:
            raise InvalidInputError(f"invalid row at line {line}: {exc.errors()[0]['msg']}") from exc

    return requests


def _operator_ids_from_csv(path: Path) -> list[str]:
    rows = _read_rows(path)
    if not rows:
        raise InvalidInputError(f"CSV file is empty: {path}")

    header = [cell.strip().lower() for cell in rows[0]]
    column = next((i for i, name in enumerate(header) if name in _OPERATOR_COLUMNS), None)
    if column is None:
        raise InvalidInputError(f"CSV file must have a 'minerid' or 'miner' column: {path}")

    ids: list[str] = []
    for row in rows[1:]:
        if column >= len(row) or not row[column].strip():
            continue
        ids.append(row[column].strip())
    return ids


def read_operator_ids(path: str | Path) -> list[str]:
    """Read operator ids from a ``.csv`` file or a plain one-per-line list.

    Plain text files skip blank lines and ``#`` comments.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return _operator_ids_from_csv(path)

    if not path.is_file():
        raise InvalidInputError(f"input file not found: {path}")

    ids: list[str] = []
    with path.open("r", encoding="utf-8") as f:
        for raw in f:
            text = raw.strip()
            if not text or text.startswith("#"):
                continue
            ids.append(text)
    return ids


def parse_operator_input(value: str) -> list[str]:
    """Resolve a file path or a single operator id into a list of ids."""
    if Path(value).is_file():
        return read_operator_ids(value)
    return [validate_operator_id(value)]


def parse_operator_list(value: str) -> list[str]:
    """Split a comma-separated operator list, skipping empty entries."""
    return [validate_operator_id(part) for part in value.split(",") if part.strip()]
