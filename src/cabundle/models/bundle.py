"""Fetched certificate bundle."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class BundleRecord(BaseModel):
    """One bundle file as downloaded during a single cycle.

    Parameters
    ----------
    logical_name : str
        Published file name (e.g. ``"My Root CA.pem"``).
    content : bytes
        Raw file bytes, UTF-8 PEM text.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    logical_name: str
    content: bytes

    @field_validator("logical_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("logical_name must be non-empty")
        return value
