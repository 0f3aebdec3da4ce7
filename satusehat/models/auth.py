"""
Pydantic models for authentication.
"""

import time

from pydantic import BaseModel, ConfigDict, Field

from satusehat.constants import TOKEN_ANTICIPATION_SECONDS


def now_ms() -> int:
    """Current time as milliseconds since the UNIX epoch."""
    return int(time.time() * 1000)


def _parse_int(value: str | int | None) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class AuthDetail(BaseModel):
    """
    Access token record returned by the SatuSehat token endpoint.

    The platform reports every field as a string, including the numeric
    issued_at (milliseconds) and expires_in (seconds). Fields not declared
    here are preserved as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    access_token: str
    token_type: str = "BearerToken"
    issued_at: str = ""
    expires_in: str = ""
    scope: str = ""
    client_id: str = ""
    status: str = ""
    application_name: str = ""
    organization_name: str = ""
    developer_email: str = Field(default="", alias="developer.email")
    api_product_list: str = ""
    api_product_list_json: list[str] = Field(default_factory=list)
    refresh_token_expires_in: str = ""
    refresh_count: str = ""

    def expires_at_ms(self, anticipation: int = TOKEN_ANTICIPATION_SECONDS) -> int | None:
        """
        Instant (ms epoch) from which the token must no longer be used.

        Returns None when issued_at or expires_in is missing or not a number.
        """
        issued_at = _parse_int(self.issued_at)
        expires_in = _parse_int(self.expires_in)
        if not issued_at or not expires_in:
            return None
        return issued_at + expires_in * 1000 - anticipation * 1000

    def is_usable(
        self,
        at_ms: int | None = None,
        anticipation: int = TOKEN_ANTICIPATION_SECONDS,
    ) -> bool:
        """Check whether the token can still be sent at the given instant."""
        expires_at = self.expires_at_ms(anticipation)
        if expires_at is None:
            return False
        current = now_ms() if at_ms is None else at_ms
        return current < expires_at

    def seconds_until_expiry(
        self,
        at_ms: int | None = None,
        anticipation: int = TOKEN_ANTICIPATION_SECONDS,
    ) -> float | None:
        """Seconds left before the anticipation-adjusted expiry."""
        expires_at = self.expires_at_ms(anticipation)
        if expires_at is None:
            return None
        current = now_ms() if at_ms is None else at_ms
        return (expires_at - current) / 1000

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"
