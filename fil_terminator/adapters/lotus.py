"""Lotus full-node adapter for the ChainState port.

Speaks Filecoin JSON-RPC 2.0 over a single shared ``httpx.Client``. Every
call is an idempotent read, so the adapter may be used from several worker
threads at once.

Big integers (token amounts, deal weights, smoothed estimates) arrive as
decimal strings and are converted to ``int`` at this boundary.
"""

from __future__ import annotations

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx

from fil_terminator.adapters.penalty import actors_version_for_network
from fil_terminator.core.domain.errors import (
    ExternalCallError,
    InvalidInputError,
    SnapshotUnavailableError,
    UnsupportedVersionError,
)
from fil_terminator.core.domain.types import OperatorInfo, Sector, SmoothedEstimate
from fil_terminator.core.ports.chain_state import SnapshotHandle

if TYPE_CHECKING:
    from fil_terminator.config import LotusConfig

LOGGER = logging.getLogger(__name__)

REWARD_ACTOR = "f02"
POWER_ACTOR = "f04"

# Sector quality, actors v12+.
QUALITY_BASE_MULTIPLIER = 10
DEAL_WEIGHT_MULTIPLIER = 10
VERIFIED_DEAL_WEIGHT_MULTIPLIER = 100
SECTOR_QUALITY_PRECISION = 20


def qa_power_for_weight(
    sector_size: int,
    duration: int,
    deal_weight: int,
    verified_deal_weight: int,
) -> int:
    """Quality-adjusted power of a sector given its deal space-time weights."""
    sector_space_time = sector_size * duration
    if sector_space_time <= 0:
        return sector_size

    total_deal_space_time = deal_weight + verified_deal_weight
    weighted_base = (sector_space_time - total_deal_space_time) * QUALITY_BASE_MULTIPLIER
    weighted_deal = deal_weight * DEAL_WEIGHT_MULTIPLIER
    weighted_verified = verified_deal_weight * VERIFIED_DEAL_WEIGHT_MULTIPLIER
    weighted_sum = weighted_base + weighted_deal + weighted_verified

    quality = (weighted_sum << SECTOR_QUALITY_PRECISION) // (
        sector_space_time * QUALITY_BASE_MULTIPLIER
    )
    return (sector_size * quality) >> SECTOR_QUALITY_PRECISION


def _big(value: Any) -> int:
    if value is None or value == "":
        return 0
    return int(value)


def _estimate(obj: dict[str, Any]) -> SmoothedEstimate:
    return SmoothedEstimate(
        position=_big(obj["PositionEstimate"]),
        velocity=_big(obj["VelocityEstimate"]),
    )


class LotusChainState:
    """ChainState implementation backed by a Lotus JSON-RPC endpoint."""

    def __init__(
        self,
        config: LotusConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        self._url = config.api_url
        self._client = httpx.Client(
            timeout=config.timeout_seconds,
            headers=headers,
            transport=transport,
        )
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> LotusChainState:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # JSON-RPC
    # ------------------------------------------------------------------

    def _call(self, method: str, *params: Any) -> Any:
        with self._id_lock:
            request_id = next(self._ids)

        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": f"Filecoin.{method}",
            "params": list(params),
        }

        try:
            resp = self._client.post(self._url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as exc:
            raise ExternalCallError(f"{method} failed: {exc}") from exc
        except ValueError as exc:
            raise ExternalCallError(f"{method} returned invalid JSON: {exc}") from exc

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ExternalCallError(f"{method} failed: {message}")

        LOGGER.debug("Lotus call", extra={"method": method, "request_id": request_id})
        return body.get("result")

    # ------------------------------------------------------------------
    # ChainState
    # ------------------------------------------------------------------

    def current_height(self) -> int:
        head = self._call("ChainHead")
        return int(head["Height"])

    def snapshot_at(self, epoch: int) -> SnapshotHandle:
        try:
            tipset = self._call("ChainGetTipSetByHeight", epoch, None)
        except ExternalCallError as exc:
            raise SnapshotUnavailableError(f"failed to get tipset at epoch {epoch}: {exc}") from exc
        if not tipset:
            raise SnapshotUnavailableError(f"no tipset at epoch {epoch}")
        return SnapshotHandle(epoch=int(tipset["Height"]), key=tipset["Cids"])

    def network_version(self, snapshot: SnapshotHandle) -> int:
        return int(self._call("StateNetworkVersion", snapshot.key))

    def actor_version(self, snapshot: SnapshotHandle, operator_id: str) -> int:
        actor = self._call("StateGetActor", operator_id, snapshot.key)
        if not actor:
            raise InvalidInputError(f"actor {operator_id} not found")

        network_version = self.network_version(snapshot)
        codes = self._call("StateActorCodeCIDs", network_version)
        if actor.get("Code") != codes.get("storageminer"):
            raise UnsupportedVersionError(
                f"actor {operator_id} is not a storage miner of network version {network_version}"
            )
        return actors_version_for_network(network_version)

    def operator_info(self, snapshot: SnapshotHandle, operator_id: str) -> OperatorInfo:
        info = self._call("StateMinerInfo", operator_id, snapshot.key)
        return OperatorInfo(operator_id=operator_id, sector_size=int(info["SectorSize"]))

    def sectors(
        self,
        snapshot: SnapshotHandle,
        operator_id: str,
        sector_numbers: tuple[int, ...] | None = None,
    ) -> list[Sector]:
        sector_size = self.operator_info(snapshot, operator_id).sector_size

        if not sector_numbers:
            raw = self._call("StateMinerSectors", operator_id, None, snapshot.key) or []
        else:
            raw = []
            for number in sector_numbers:
                info = self._call("StateSectorGetInfo", operator_id, number, snapshot.key)
                if info is None:
                    raise InvalidInputError(f"sector {number} of {operator_id} not found")
                raw.append(info)

        return [self._to_sector(item, sector_size) for item in raw]

    @staticmethod
    def _to_sector(item: dict[str, Any], sector_size: int) -> Sector:
        activation = int(item["Activation"])
        expiration = int(item["Expiration"])
        power_base = item.get("PowerBaseEpoch") or activation
        qa_power = qa_power_for_weight(
            sector_size,
            expiration - int(power_base),
            _big(item.get("DealWeight")),
            _big(item.get("VerifiedDealWeight")),
        )
        return Sector(
            sector_number=int(item["SectorNumber"]),
            activation=activation,
            expiration=expiration,
            initial_pledge=_big(item.get("InitialPledge")),
            qa_power=qa_power,
        )

    def reward_signal(self, snapshot: SnapshotHandle) -> SmoothedEstimate:
        state = self._call("StateReadState", REWARD_ACTOR, snapshot.key)
        return _estimate(state["State"]["ThisEpochRewardSmoothed"])

    def power_signal(self, snapshot: SnapshotHandle) -> SmoothedEstimate:
        state = self._call("StateReadState", POWER_ACTOR, snapshot.key)
        return _estimate(state["State"]["ThisEpochQAPowerSmoothed"])

    def genesis_time(self) -> datetime:
        genesis = self._call("ChainGetGenesis")
        timestamp = int(genesis["Blocks"][0]["Timestamp"])
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
