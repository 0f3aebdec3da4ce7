"""
Client settings using pydantic-settings.

Environment variables are prefixed with IHS_. Explicit overrides passed to
ConfigResolver take precedence over the environment, which takes precedence
over the built-in defaults.
"""

import inspect
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from satusehat.config.endpoints import Mode
from satusehat.config.logging import get_logger
from satusehat.constants import (
    PRODUCTION_PEM_FILE,
    REQUEST_TIMEOUT_SECONDS,
    SANDBOX_PEM_FILE,
)

logger = get_logger(__name__)

# Mode names accepted as sandbox without a warning
SANDBOX_ALIASES = frozenset({"sandbox", "development", "dev", "staging", "stg"})

UserConfig = (
    Mapping[str, Any]
    | Callable[[], Mapping[str, Any] | Awaitable[Mapping[str, Any]]]
    | None
)


class Settings(BaseSettings):
    """Resolved client configuration. Immutable once constructed."""

    model_config = SettingsConfigDict(
        env_prefix="IHS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Credentials from the SatuSehat platform API access page
    client_secret: str = ""
    secret_key: str = ""

    mode: Mode = Mode.SANDBOX

    # Absolute or relative path of the KYC server public key
    kyc_pem_file: str = Field(default="", validate_default=True)

    # Request settings
    request_timeout: float = REQUEST_TIMEOUT_SECONDS

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Seconds to hold back token requests after a failed one (0 disables)
    auth_failure_cooldown_seconds: int = 0

    # Redis settings (for a token cache shared across processes)
    redis_url: str | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, value: Any) -> Any:
        """Map mode names onto Mode, falling back to sandbox for unknown values."""
        if isinstance(value, Mode):
            return value
        name = str(value or "").strip().lower()
        if name == Mode.PRODUCTION.value:
            return Mode.PRODUCTION
        if name in SANDBOX_ALIASES:
            return Mode.SANDBOX
        logger.warning("Invalid mode, falling back to sandbox", mode=value)
        return Mode.SANDBOX

    @field_validator("kyc_pem_file")
    @classmethod
    def default_pem_file(cls, value: str, info: ValidationInfo) -> str:
        """Derive the key file name from the mode when not set."""
        if value:
            return value
        if info.data.get("mode") == Mode.PRODUCTION:
            return PRODUCTION_PEM_FILE
        return SANDBOX_PEM_FILE

    @property
    def has_credentials(self) -> bool:
        """Both halves of the client credential pair are present."""
        return bool(self.client_secret and self.secret_key)


class ConfigResolver:
    """
    Lazily resolves and caches the client Settings.

    Overrides may be a mapping of field names, or a sync or async callable
    returning one. Keys whose value is None are ignored so they fall through
    to the environment.
    """

    def __init__(self, overrides: UserConfig = None):
        self._overrides = overrides
        self._config: Settings | None = None

    async def resolve(self) -> Settings:
        """Get the resolved settings, loading them on first use."""
        if self._config is None:
            self._config = await self._load()
        return self._config

    async def invalidate(self) -> Settings:
        """Discard the cached settings and resolve them again."""
        self._config = None
        return await self.resolve()

    async def _load(self) -> Settings:
        overrides = self._overrides
        if callable(overrides):
            overrides = overrides()
            if inspect.isawaitable(overrides):
                overrides = await overrides

        values = {key: value for key, value in dict(overrides or {}).items() if value is not None}
        settings = Settings(**values)

        logger.debug(
            "Resolved client configuration",
            mode=settings.mode.value,
            kyc_pem_file=settings.kyc_pem_file,
            has_credentials=settings.has_credentials,
        )
        return settings
