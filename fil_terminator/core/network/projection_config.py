"""Projection configuration model for future-epoch estimates."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProjectionConfig(BaseModel):
    """Per-epoch growth/decay assumptions used to extrapolate network signals."""

    power_growth_rate: float = Field(default=0.0001, ge=0)
    reward_decay_rate: float = Field(default=0.00005, ge=0)
    min_reward_factor: float = Field(default=0.1, gt=0, le=1)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> ProjectionConfig:
        """Create a ProjectionConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)
