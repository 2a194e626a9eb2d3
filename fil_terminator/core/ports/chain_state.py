"""Chain-state port.

This module defines the read-only boundary to the chain-state service. The
fee engine only ever talks to this protocol; concrete implementations adapt
a specific node API to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from fil_terminator.core.domain.types import OperatorInfo, Sector, SmoothedEstimate


@dataclass(frozen=True, slots=True)
class SnapshotHandle:
    """Finalized chain state at one epoch.

    ``key`` is opaque to the core and only interpreted by the adapter that
    produced the handle.
    """

    epoch: int
    key: Any = None


class ChainState(Protocol):
    """Read-only chain-state boundary.

    All methods are idempotent reads and may be called concurrently from
    several worker threads. Failures raise TerminatorError subclasses.
    """

    def current_height(self) -> int:
        """Return the epoch of the current chain head."""

    def snapshot_at(self, epoch: int) -> SnapshotHandle:
        """Return finalized state at ``epoch`` or raise SnapshotUnavailableError."""

    def network_version(self, snapshot: SnapshotHandle) -> int:
        """Return the network version active at the snapshot."""

    def actor_version(self, snapshot: SnapshotHandle, operator_id: str) -> int:
        """Return the miner actor version of the operator at the snapshot."""

    def operator_info(self, snapshot: SnapshotHandle, operator_id: str) -> OperatorInfo:
        """Return static operator information."""

    def sectors(
        self,
        snapshot: SnapshotHandle,
        operator_id: str,
        sector_numbers: tuple[int, ...] | None = None,
    ) -> list[Sector]:
        """Return the operator's sectors, optionally restricted to ``sector_numbers``."""

    def reward_signal(self, snapshot: SnapshotHandle) -> SmoothedEstimate:
        """Return the smoothed per-epoch block reward estimate."""

    def power_signal(self, snapshot: SnapshotHandle) -> SmoothedEstimate:
        """Return the smoothed network quality-adjusted power estimate."""

    def genesis_time(self) -> datetime:
        """Return the wall-clock time of epoch 0."""
