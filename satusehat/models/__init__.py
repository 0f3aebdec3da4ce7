"""Pydantic models for the SatuSehat client."""

from satusehat.models.auth import AuthDetail, now_ms
from satusehat.models.kyc import KycResult

__all__ = [
    "AuthDetail",
    "now_ms",
    "KycResult",
]
