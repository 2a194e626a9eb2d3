"""Core value objects.

These pydantic models are the canonical shapes exchanged between the chain
ports, the fee engine and the batch layer, and they are what gets exported
to JSON. All of them are frozen: results are assembled bottom-up once
(sector -> operator -> batch) and never mutated afterwards, which makes them
safe to hand across worker threads.

Token amounts are attoFIL integers. Smoothed estimates are Q.128 fixed-point
integers as stored on chain.
"""

# pylint: disable=missing-class-docstring
from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fil_terminator.core.domain.errors import InvalidInputError, TaskError

# ID addresses (f0123) plus the key/actor/delegated protocols (f1, f2, f3, f4).
_OPERATOR_ID_RE = re.compile(r"^[ft](0\d+|[1-4][a-z0-9]+)$")

SectorAction = Literal["terminate", "expire"]


def validate_operator_id(value: str) -> str:
    """Return the normalized operator id or raise InvalidInputError."""
    operator_id = value.strip()
    if not _OPERATOR_ID_RE.match(operator_id):
        raise InvalidInputError(f"invalid miner address: {value!r}")
    return operator_id


# ---------------------------------------------------------------------------
# Chain-sourced models
# ---------------------------------------------------------------------------


class SmoothedEstimate(BaseModel):
    """Position/velocity pair summarizing a network signal's trend."""

    position: int
    velocity: int

    model_config = ConfigDict(extra="forbid", frozen=True)


class Sector(BaseModel):
    sector_number: int = Field(..., ge=0)
    activation: int
    expiration: int
    initial_pledge: int = Field(..., ge=0)
    qa_power: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class OperatorInfo(BaseModel):
    operator_id: str = Field(..., min_length=1)
    sector_size: int = Field(..., gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Calculation mode
# ---------------------------------------------------------------------------


class CalculationRequest(BaseModel):
    """Price termination of an operator's sectors at ``target_epoch``.

    ``target_epoch == 0`` means the current chain head. An empty
    ``sector_numbers`` selects every sector of the operator. The operator id
    is only stripped here; the runner validates it, so a malformed id in a
    batch file yields a failed result rather than rejecting the file.
    """

    operator_id: str = Field(..., min_length=1)
    target_epoch: int = Field(default=0, ge=0)
    sector_numbers: tuple[int, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    @model_validator(mode="after")
    def validate_sector_numbers(self) -> CalculationRequest:
        if any(number < 0 for number in self.sector_numbers):
            raise ValueError("sector numbers must be non-negative")
        return self


class SectorResult(BaseModel):
    sector_number: int = Field(..., ge=0)
    fee: int = 0
    age: int = 0
    is_expired: bool = False
    expired_days: float | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class CalculationResult(BaseModel):
    operator_id: str
    target_epoch: int
    current_epoch: int = 0
    is_estimate: bool = False

    total_sectors: int = Field(default=0, ge=0)
    active_sectors: int = Field(default=0, ge=0)
    expired_sectors: int = Field(default=0, ge=0)
    total_fee: int = 0

    sector_results: tuple[SectorResult, ...] = ()
    error: TaskError | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_totals(self) -> CalculationResult:
        if self.active_sectors + self.expired_sectors != self.total_sectors:
            raise ValueError("active_sectors + expired_sectors must equal total_sectors")
        priced = sum(r.fee for r in self.sector_results if not r.is_expired)
        if priced != self.total_fee:
            raise ValueError("total_fee must equal the sum of non-expired sector fees")
        return self

    @property
    def status(self) -> str:
        return "success" if self.error is None else "failed"

    @classmethod
    def failed(
        cls,
        *,
        operator_id: str,
        target_epoch: int,
        error: TaskError,
        current_epoch: int = 0,
        is_estimate: bool = False,
    ) -> CalculationResult:
        return cls(
            operator_id=operator_id,
            target_epoch=target_epoch,
            current_epoch=current_epoch,
            is_estimate=is_estimate,
            error=error,
        )


# ---------------------------------------------------------------------------
# Strategy mode
# ---------------------------------------------------------------------------


class StrategyTask(BaseModel):
    operator_id: str = Field(..., min_length=1)
    termination_epoch: int = Field(default=0, ge=0)
    expiration_threshold_days: int = Field(default=7, ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)


class SectorStrategy(BaseModel):
    sector_number: int = Field(..., ge=0)
    expiration_epoch: int
    remaining_days: float
    action: SectorAction
    termination_fee: int
    daily_fault_fee: int
    expiration_fee: int
    recommended_fee: int

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_recommended_fee(self) -> SectorStrategy:
        expected = self.termination_fee if self.action == "terminate" else self.expiration_fee
        if self.recommended_fee != expected:
            raise ValueError(f"recommended_fee must match the {self.action} fee")
        return self


class StrategyResult(BaseModel):
    operator_id: str
    termination_epoch: int
    current_epoch: int = 0
    is_estimate: bool = False
    expiration_threshold_days: int = Field(default=0, ge=0)

    total_sectors: int = Field(default=0, ge=0)
    expired_sectors: int = Field(default=0, ge=0)
    terminate_sectors: int = Field(default=0, ge=0)
    expire_sectors: int = Field(default=0, ge=0)
    # Sectors whose pricing failed; excluded from every total below.
    omitted_sectors: int = Field(default=0, ge=0)
    omitted_sector_numbers: tuple[int, ...] = ()

    termination_fee: int = 0
    expiration_fee: int = 0
    total_fee: int = 0

    sector_details: tuple[SectorStrategy, ...] = ()
    error: TaskError | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_totals(self) -> StrategyResult:
        if self.total_fee != self.termination_fee + self.expiration_fee:
            raise ValueError("total_fee must equal termination_fee + expiration_fee")
        if self.terminate_sectors + self.expire_sectors > self.total_sectors:
            raise ValueError("terminate_sectors + expire_sectors exceeds total_sectors")
        if self.omitted_sectors != len(self.omitted_sector_numbers):
            raise ValueError("omitted_sectors must match omitted_sector_numbers")
        accounted = (
            self.terminate_sectors + self.expire_sectors + self.expired_sectors + self.omitted_sectors
        )
        if self.error is None and accounted != self.total_sectors:
            raise ValueError("every sector must be terminated, expired, expiring or omitted")

        terminate = sum(1 for d in self.sector_details if d.action == "terminate")
        expire = len(self.sector_details) - terminate
        if (terminate, expire) != (self.terminate_sectors, self.expire_sectors):
            raise ValueError("sector counts must match sector_details actions")
        return self

    @property
    def status(self) -> str:
        return "success" if self.error is None else "failed"

    @property
    def all_terminate_fee(self) -> int:
        """Cost of terminating every priced sector regardless of strategy."""
        return sum(d.termination_fee for d in self.sector_details)

    @classmethod
    def failed(
        cls,
        *,
        task: StrategyTask,
        error: TaskError,
        current_epoch: int = 0,
        is_estimate: bool = False,
    ) -> StrategyResult:
        return cls(
            operator_id=task.operator_id,
            termination_epoch=task.termination_epoch,
            expiration_threshold_days=task.expiration_threshold_days,
            current_epoch=current_epoch,
            is_estimate=is_estimate,
            error=error,
        )
