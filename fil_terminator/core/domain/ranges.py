"""Sector selection parsing."""

from __future__ import annotations

from fil_terminator.core.domain.errors import InvalidInputError


def _parse_number(raw: str, what: str) -> int:
    token = raw.strip()
    # isdigit() rejects signs, so "-3" never reaches int()
    if not (token.isascii() and token.isdigit()):
        raise InvalidInputError(f"invalid {what}: {raw!r}")
    return int(token)


def parse_sector_numbers(text: str) -> list[int]:
    """Parse a selection such as ``"1,3-5,7"`` into ``[1, 3, 4, 5, 7]``.

    Tokens keep their input order, ranges expand in ascending order and
    duplicates are preserved. Empty tokens are skipped. Any malformed token
    fails the whole parse.
    """
    numbers: list[int] = []

    for part in text.split(","):
        token = part.strip()
        if not token:
            continue

        if token.startswith("-"):
            raise InvalidInputError(f"sector number cannot be negative: {token}")

        if "-" in token:
            bounds = token.split("-")
            if len(bounds) != 2:
                raise InvalidInputError(f"invalid range format: {token}")

            start = _parse_number(bounds[0], "start sector number")
            end = _parse_number(bounds[1], "end sector number")
            if start > end:
                raise InvalidInputError(
                    "start sector number cannot be greater than end sector number: "
                    f"{start} > {end}"
                )
            numbers.extend(range(start, end + 1))
            continue

        numbers.append(_parse_number(token, "sector number"))

    return numbers
