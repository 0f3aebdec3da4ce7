"""
Access token storage.

Provides the AuthStore interface consulted by AuthManager before every token
request, an in-process single-slot default, and a Redis-backed store for
sharing one token across processes.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from satusehat.config.logging import get_logger
from satusehat.constants import TOKEN_ANTICIPATION_SECONDS, TOKEN_CACHE_KEY
from satusehat.models.auth import AuthDetail, now_ms

logger = get_logger(__name__)


class AuthStore(ABC):
    """
    Cache for the current access token.

    A new token is requested whenever get() returns None.
    """

    @abstractmethod
    async def get(self) -> AuthDetail | None:
        """Get the cached token, or None if absent or no longer usable."""
        ...

    @abstractmethod
    async def set(self, detail: AuthDetail) -> None:
        """Replace the cached token."""
        ...


class InMemoryAuthStore(AuthStore):
    """Single-slot token cache held in process memory."""

    def __init__(
        self,
        clock: Callable[[], int] = now_ms,
        anticipation: int = TOKEN_ANTICIPATION_SECONDS,
    ):
        """
        Initialize the store.

        Args:
            clock: Returns the current time in milliseconds since the epoch
            anticipation: Seconds before the nominal expiry at which the
                token is dropped
        """
        self._clock = clock
        self._anticipation = anticipation
        self._detail: AuthDetail | None = None

    async def get(self) -> AuthDetail | None:
        if self._detail is None:
            return None
        if not self._detail.is_usable(self._clock(), self._anticipation):
            logger.debug("Cached access token expired")
            self._detail = None
        return self._detail

    async def set(self, detail: AuthDetail) -> None:
        self._detail = detail


class RedisAuthStore(AuthStore):
    """Redis-backed token cache shared by every process using the same key."""

    def __init__(
        self,
        redis_url: str,
        key: str = TOKEN_CACHE_KEY,
        require_tls: bool = False,
        clock: Callable[[], int] = now_ms,
        anticipation: int = TOKEN_ANTICIPATION_SECONDS,
    ):
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL
            key: Key holding the serialized token
            require_tls: If True, require rediss:// scheme
            clock: Returns the current time in milliseconds since the epoch
            anticipation: Seconds before the nominal expiry at which the
                token is dropped
        """
        if require_tls and not redis_url.startswith("rediss://"):
            raise ValueError(
                "Redis TLS required but URL does not use rediss:// scheme."
            )

        if not redis_url.startswith("rediss://"):
            logger.warning(
                "Redis connection not using TLS",
                redis_url=redis_url[:20] + "...",
            )

        self._redis_url = redis_url
        self._key = key
        self._clock = clock
        self._anticipation = anticipation
        self._client = None

    async def _get_client(self):
        """Lazily initialize Redis client."""
        if self._client is None:
            import redis.asyncio as redis

            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def get(self) -> AuthDetail | None:
        client = await self._get_client()
        data = await client.get(self._key)
        if not data:
            return None

        detail = AuthDetail.model_validate_json(data)
        if not detail.is_usable(self._clock(), self._anticipation):
            return None
        return detail

    async def set(self, detail: AuthDetail) -> None:
        client = await self._get_client()
        remaining = detail.seconds_until_expiry(self._clock(), self._anticipation)
        if remaining is None or remaining <= 0:
            # Unusable tokens are not worth sharing
            await client.delete(self._key)
            return
        await client.setex(
            self._key,
            max(1, int(remaining)),
            detail.model_dump_json(by_alias=True),
        )

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
