"""Shared fakes for the semantic test suite.

FakeChainState and FakePenaltyModel implement the two ports with fully
deterministic, in-memory behaviour:

- the fake penalty model returns ``qa_power`` as the daily fault fee and
  ``initial_pledge`` as the termination fee, so expected totals can be read
  straight off the sector fixtures;
- the fake chain serves sectors per operator and records every snapshot it
  hands out.
"""

# pylint: disable=missing-function-docstring,redefined-outer-name
from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Callable, Iterable

import pytest

from fil_terminator.core.domain.epochs import MAINNET_GENESIS
from fil_terminator.core.domain.errors import (
    ExternalCallError,
    InvalidInputError,
    SnapshotUnavailableError,
)
from fil_terminator.core.domain.types import OperatorInfo, Sector, SmoothedEstimate
from fil_terminator.core.ports.chain_state import SnapshotHandle

HEAD = 100_000
SECTOR_SIZE = 32 << 30

DEFAULT_REWARD = SmoothedEstimate(position=3 << 128, velocity=0)
DEFAULT_POWER = SmoothedEstimate(position=1 << 128, velocity=0)


def make_sector(
    number: int,
    *,
    expiration: int,
    activation: int = 0,
    pledge: int = 1_000,
    qa_power: int = 10,
) -> Sector:
    return Sector(
        sector_number=number,
        activation=activation,
        expiration=expiration,
        initial_pledge=pledge,
        qa_power=qa_power,
    )


class FakeChainState:
    """In-memory ChainState."""

    def __init__(
        self,
        sectors: dict[str, list[Sector]] | None = None,
        *,
        head: int = HEAD,
        network_version: int = 25,
        actor_versions: dict[str, int] | None = None,
        failing_operators: Iterable[str] = (),
        unavailable_epochs: Iterable[int] = (),
        reward: SmoothedEstimate = DEFAULT_REWARD,
        power: SmoothedEstimate = DEFAULT_POWER,
        genesis: datetime = MAINNET_GENESIS,
    ) -> None:
        self.sectors_by_operator = dict(sectors or {})
        self.head = head
        self.nv = network_version
        self.actor_versions = dict(actor_versions or {})
        self.failing_operators = set(failing_operators)
        self.unavailable_epochs = set(unavailable_epochs)
        self.reward = reward
        self.power = power
        self.genesis = genesis

        self.snapshot_calls: list[int] = []
        self.closed = False
        self._lock = threading.Lock()

    def __enter__(self) -> FakeChainState:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True

    def current_height(self) -> int:
        return self.head

    def snapshot_at(self, epoch: int) -> SnapshotHandle:
        with self._lock:
            self.snapshot_calls.append(epoch)
        if epoch in self.unavailable_epochs or epoch > self.head:
            raise SnapshotUnavailableError(f"no tipset at epoch {epoch}")
        return SnapshotHandle(epoch=epoch, key=("tipset", epoch))

    def network_version(self, snapshot: SnapshotHandle) -> int:
        return self.nv

    def _known(self, operator_id: str) -> list[Sector]:
        if operator_id in self.failing_operators:
            raise ExternalCallError(f"node error for {operator_id}")
        if operator_id not in self.sectors_by_operator:
            raise InvalidInputError(f"actor {operator_id} not found")
        return self.sectors_by_operator[operator_id]

    def actor_version(self, snapshot: SnapshotHandle, operator_id: str) -> int:
        self._known(operator_id)
        return self.actor_versions.get(operator_id, 16)

    def operator_info(self, snapshot: SnapshotHandle, operator_id: str) -> OperatorInfo:
        self._known(operator_id)
        return OperatorInfo(operator_id=operator_id, sector_size=SECTOR_SIZE)

    def sectors(
        self,
        snapshot: SnapshotHandle,
        operator_id: str,
        sector_numbers: tuple[int, ...] | None = None,
    ) -> list[Sector]:
        sectors = self._known(operator_id)
        if not sector_numbers:
            return list(sectors)

        by_number = {s.sector_number: s for s in sectors}
        selected = []
        for number in sector_numbers:
            if number not in by_number:
                raise InvalidInputError(f"sector {number} of {operator_id} not found")
            selected.append(by_number[number])
        return selected

    def reward_signal(self, snapshot: SnapshotHandle) -> SmoothedEstimate:
        return self.reward

    def power_signal(self, snapshot: SnapshotHandle) -> SmoothedEstimate:
        return self.power

    def genesis_time(self) -> datetime:
        return self.genesis


class FakePenaltyModel:
    """PenaltyModel where fault fee = qa_power and termination fee = pledge.

    Sectors whose pledge is listed in ``failing_pledges`` raise RuntimeError.
    """

    def __init__(self, failing_pledges: Iterable[int] = ()) -> None:
        self.failing_pledges = set(failing_pledges)
        self.fault_calls: list[tuple[int, SmoothedEstimate, SmoothedEstimate, int]] = []
        self._lock = threading.Lock()

    def continued_fault_fee(
        self,
        network_version: int,
        reward: SmoothedEstimate,
        power: SmoothedEstimate,
        qa_power: int,
    ) -> int:
        with self._lock:
            self.fault_calls.append((network_version, reward, power, qa_power))
        return qa_power

    def termination_fee(
        self,
        network_version: int,
        initial_pledge: int,
        sector_age: int,
        fault_fee: int,
    ) -> int:
        if initial_pledge in self.failing_pledges:
            raise RuntimeError(f"penalty failure for pledge {initial_pledge}")
        return initial_pledge


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[Any] = []
        self.closed = False

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def close(self) -> None:
        self.closed = True

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def chain_factory() -> Callable[..., FakeChainState]:
    return FakeChainState


@pytest.fixture
def sector_factory() -> Callable[..., Sector]:
    return make_sector


@pytest.fixture
def penalty() -> FakePenaltyModel:
    return FakePenaltyModel()


@pytest.fixture
def penalty_factory() -> Callable[..., FakePenaltyModel]:
    return FakePenaltyModel


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def head() -> int:
    return HEAD
