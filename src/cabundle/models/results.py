"""Cycle outcome models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ConvergeResult(BaseModel):
    """Names written (or left alone) by one convergence pass."""

    model_config = ConfigDict(extra="forbid")

    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)

    @property
    def applied(self) -> int:
        """Number of write calls that succeeded."""
        return len(self.created) + len(self.updated)


class ReconcileStatus(StrEnum):
    SYNCED = "synced"
    SKIPPED = "skipped"


class ReconcileResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: ReconcileStatus
    converge: ConvergeResult = Field(default_factory=ConvergeResult)
    deleted: list[str] = Field(default_factory=list)
    reason: str = ""
