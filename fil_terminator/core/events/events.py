"""
Domain event models.

These events are progress and diagnostic facts observed while pricing a
batch. They are consumed by loggers and recorders and may arrive from any
worker thread in any order.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TaskStartedEvent:
    label: str
    index: int
    total: int
    worker: str


@dataclass(slots=True)
class TaskFinishedEvent:
    label: str
    index: int
    total: int
    worker: str

    ok: bool
    duration_seconds: float
    error_kind: str | None = None


@dataclass(slots=True)
class TaskSkippedEvent:
    label: str
    index: int
    total: int
    reason: str


@dataclass(slots=True)
class SectorOmittedEvent:
    operator_id: str
    sector_number: int
    error_kind: str
    message: str


@dataclass(slots=True)
class SectorDecisionEvent:
    operator_id: str
    sector_number: int
    action: str
    remaining_days: float
    recommended_fee: int
