"""Trigger events consumed by the reconciliation loop."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TriggerSource(StrEnum):
    PERIODIC = "periodic"
    MANUAL = "manual"


class TriggerEvent(BaseModel):
    """A wake-up for the loop, naming the config resource to read.

    Events carry no desired state. Two events for the same resource are
    interchangeable, which is what makes dropping one on a full queue safe.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Trigger-config resource name")
    namespace: str
    source: TriggerSource = TriggerSource.PERIODIC
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("name", "namespace")
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be non-empty")
        return value

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
