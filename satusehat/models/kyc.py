"""
Pydantic models for KYC identity verification responses.
"""

from typing import Any

from pydantic import BaseModel, Field


class KycResult(BaseModel):
    """Outcome of a KYC call. Failed calls carry an ``error`` key in data."""

    success: bool
    status_code: int
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def error(self) -> str | None:
        value = self.data.get("error")
        return None if value is None else str(value)

