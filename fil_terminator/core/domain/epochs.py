"""Epoch and wall-clock time conversions.

Epochs are a fixed 30 second unit counted from genesis. All conversions are
linear; the day ratio is fixed at 2880 epochs per day.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fil_terminator.core.domain.errors import InvalidInputError

EPOCH_DURATION_SECONDS: int = 30
EPOCH_DURATION = timedelta(seconds=EPOCH_DURATION_SECONDS)
EPOCHS_PER_DAY: int = 2880

# Mainnet genesis, used when no node is reachable.
MAINNET_GENESIS: datetime = datetime(2020, 8, 24, 22, 0, 0, tzinfo=timezone.utc)

# Formats carrying their own zone information.
_ZONED_FORMATS: tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S %Z",
)

# Formats interpreted in the local zone.
_LOCAL_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
)


def epochs_to_days(epochs: int) -> float:
    return epochs / EPOCHS_PER_DAY


def days_to_epochs(days: float) -> int:
    """Convert days to epochs, truncating toward zero."""
    return int(days * EPOCHS_PER_DAY)


def epoch_to_time(epoch: int, genesis: datetime) -> datetime:
    return genesis + timedelta(seconds=epoch * EPOCH_DURATION_SECONDS)


def time_to_epoch(moment: datetime, genesis: datetime) -> int:
    """Return the epoch containing ``moment``.

    Sub-epoch precision is truncated. Any time strictly before genesis maps
    to epoch 0.
    """
    if moment < genesis:
        return 0
    return (moment - genesis) // EPOCH_DURATION


def parse_time(text: str) -> datetime:
    """Parse a time string into an aware datetime.

    Strings without zone information are interpreted in the local zone.
    """
    value = text.strip()

    for fmt in _ZONED_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            # "Z" literal and named zones (UTC/GMT) come back naive.
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    for fmt in _LOCAL_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed.astimezone()

    raise InvalidInputError(f"unable to parse time: {text}")
