"""
SatuSehat client composition root.

Assembles the configuration resolver, auth manager, request dispatcher and
per-API services for one credential pair. Applications either construct
SatuSehatClient directly or use the process-wide default from get_client().
"""

from functools import cached_property
from typing import Any

import aiohttp

from satusehat.auth.manager import AuthManager
from satusehat.auth.store import AuthStore, InMemoryAuthStore, RedisAuthStore
from satusehat.config.endpoints import ApiFamily
from satusehat.config.logging import get_logger
from satusehat.config.settings import ConfigResolver, Settings, UserConfig
from satusehat.models.auth import AuthDetail
from satusehat.services.consent import Consent
from satusehat.services.dispatcher import RequestDispatcher, RequestSpec
from satusehat.services.http import APIResponse
from satusehat.services.kfa import KFA
from satusehat.services.kyc import KYC

logger = get_logger(__name__)

# Default instance
_client: "SatuSehatClient | None" = None


class SatuSehatClient:
    """
    Client for the SatuSehat FHIR, consent, KYC and KFA APIs.

        async with SatuSehatClient({"client_secret": ..., "secret_key": ...}) as client:
            patient = await client.fhir("/Patient/P02478375538")
            consent = await client.consent.get("P02478375538")
    """

    def __init__(
        self,
        config: UserConfig = None,
        *,
        store: AuthStore | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: Setting overrides, or a sync/async callable returning them
            store: Token cache (in-process single slot if not provided)
            session: Optional aiohttp session shared by every call; the
                caller remains responsible for closing it
        """
        self._resolver = ConfigResolver(config)
        self._auth_manager = AuthManager(self._resolver, store=store, session=session)
        self._dispatcher = RequestDispatcher(self._resolver, self._auth_manager, session=session)

    @property
    def auth_store(self) -> AuthStore:
        return self._auth_manager.store

    @auth_store.setter
    def auth_store(self, store: AuthStore) -> None:
        """Replace the token cache, e.g. with a store shared across processes."""
        self._auth_manager.store = store

    async def config(self) -> Settings:
        return await self._resolver.resolve()

    async def invalidate_config(self) -> Settings:
        """Re-read configuration from overrides and the environment."""
        return await self._resolver.invalidate()

    async def auth(self) -> AuthDetail:
        """Get the current access token, requesting one if needed."""
        return await self._auth_manager.auth()

    async def request(self, spec: RequestSpec) -> APIResponse:
        """Send an authenticated request to any API family."""
        return await self._dispatcher.request(spec)

    async def fhir(self, path: str, **kwargs: Any) -> APIResponse:
        """
        Send an authenticated request to the FHIR API.

        Args:
            path: Resource path, e.g. "/Patient" or "/Encounter/{id}"
            **kwargs: Other RequestSpec fields (params, method, headers, body)
        """
        return await self._dispatcher.request(RequestSpec(api=ApiFamily.FHIR, path=path, **kwargs))

    @cached_property
    def consent(self) -> Consent:
        return Consent(self._dispatcher)

    @cached_property
    def kyc(self) -> KYC:
        return KYC(self._dispatcher, self._resolver)

    @cached_property
    def kfa(self) -> KFA:
        return KFA(self._dispatcher)

    async def close(self) -> None:
        """Release resources held by the token store."""
        store = self._auth_manager.store
        if isinstance(store, RedisAuthStore):
            await store.close()

    async def __aenter__(self) -> "SatuSehatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


def get_client() -> SatuSehatClient:
    """
    Get or create the default client.

    Configuration comes from the environment. Uses Redis token storage if
    IHS_REDIS_URL is set, otherwise in-process storage.
    """
    global _client

    if _client is not None:
        return _client

    settings = Settings()

    store: AuthStore
    if settings.redis_url:
        store = RedisAuthStore(redis_url=settings.redis_url)
        logger.info("Using Redis token storage")
    else:
        store = InMemoryAuthStore()

    _client = SatuSehatClient(store=store)
    return _client


async def reset_client() -> None:
    """Close and discard the default client."""
    global _client

    if _client is not None:
        await _client.close()
        _client = None
