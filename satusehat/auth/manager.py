"""
Access token manager for the SatuSehat client.

Provides client-credential authentication with:
- Token reuse until the anticipation-adjusted expiry
- Pluggable token storage
- A single in-flight token request shared by concurrent callers
- Optional cooldown after failed token requests
"""

import asyncio

import aiohttp

from satusehat.audit import AuditEvent, audit_log
from satusehat.auth.cooldown import AuthCooldown
from satusehat.auth.store import AuthStore, InMemoryAuthStore
from satusehat.config.endpoints import ApiFamily, get_endpoint_url
from satusehat.config.logging import get_logger
from satusehat.config.settings import ConfigResolver, Settings
from satusehat.errors import (
    AuthCooldownError,
    AuthenticationFailedError,
    CredentialsMissingError,
)
from satusehat.models.auth import AuthDetail
from satusehat.services.http import send

logger = get_logger(__name__)

TOKEN_PATH = "/accesstoken?grant_type=client_credentials"


class AuthManager:
    """
    Obtains and caches the access token used by every API call.

    The platform rate-limits the token endpoint to one request per minute
    after a failed attempt. Set auth_failure_cooldown_seconds to have the
    client hold back instead of the server.
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        store: AuthStore | None = None,
        session: aiohttp.ClientSession | None = None,
        cooldown: AuthCooldown | None = None,
    ):
        """
        Initialize the manager.

        Args:
            resolver: Source of credentials and mode
            store: Token cache (in-process single slot if not provided)
            session: Optional aiohttp session to reuse for token requests
            cooldown: Failure gate (built from settings if not provided)
        """
        self._resolver = resolver
        self._store = store or InMemoryAuthStore()
        self._session = session
        self._cooldown = cooldown
        self._refresh: asyncio.Future[AuthDetail] | None = None

    @property
    def store(self) -> AuthStore:
        return self._store

    @store.setter
    def store(self, store: AuthStore) -> None:
        self._store = store

    async def auth(self) -> AuthDetail:
        """
        Get a usable access token, requesting a new one if needed.

        Concurrent callers that miss the cache wait on the same token request.

        Returns:
            Token record with access_token

        Raises:
            CredentialsMissingError: If client_secret or secret_key is empty
            AuthenticationFailedError: If the token endpoint rejects the request
            AuthCooldownError: If a cooldown is active after a failure
            TransportError: On network failure
        """
        detail = await self._store.get()
        if detail is not None:
            return detail

        if self._refresh is None:
            self._refresh = asyncio.ensure_future(self._request_token())
            self._refresh.add_done_callback(self._clear_refresh)
        else:
            logger.debug("Token request already in progress")

        # Shielded so a cancelled caller does not abort the request for the others
        return await asyncio.shield(self._refresh)

    def _clear_refresh(self, future: "asyncio.Future[AuthDetail]") -> None:
        if self._refresh is future:
            self._refresh = None
        if not future.cancelled():
            # Mark the exception retrieved; waiters re-raise it themselves
            future.exception()

    def _get_cooldown(self, config: Settings) -> AuthCooldown:
        if self._cooldown is None:
            self._cooldown = AuthCooldown(config.auth_failure_cooldown_seconds)
        return self._cooldown

    async def _request_token(self) -> AuthDetail:
        config = await self._resolver.resolve()

        # Another process may have stored a token while this one waited
        current = await self._store.get()
        if current is not None:
            return current

        if not config.has_credentials:
            missing = [
                name
                for name, value in (
                    ("client_secret", config.client_secret),
                    ("secret_key", config.secret_key),
                )
                if not value
            ]
            raise CredentialsMissingError(missing)

        cooldown = self._get_cooldown(config)
        retry_after = cooldown.remaining()
        if retry_after > 0:
            audit_log(
                AuditEvent.AUTH_COOLDOWN,
                mode=config.mode.value,
                success=False,
                details={"retry_after": round(retry_after, 1)},
            )
            raise AuthCooldownError(retry_after)

        url = get_endpoint_url(config.mode, ApiFamily.AUTH) + TOKEN_PATH
        response = await send(
            "POST",
            url,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "client_id": config.client_secret,
                "client_secret": config.secret_key,
            },
            timeout=config.request_timeout,
            session=self._session,
        )

        if not response.ok:
            cooldown.record_failure()
            error_body = response.text()
            logger.error(
                "Token request failed",
                mode=config.mode.value,
                status_code=response.status,
                error=error_body[:200],
            )
            audit_log(
                AuditEvent.AUTH_FAILURE,
                mode=config.mode.value,
                status_code=response.status,
                success=False,
                error=error_body[:200],
            )
            raise AuthenticationFailedError(response.status, error_body)

        try:
            detail = AuthDetail.model_validate(response.json())
        except ValueError as e:
            error_body = response.text()
            logger.error("Invalid token response", error=str(e), body=error_body[:200])
            raise AuthenticationFailedError(response.status, error_body) from e

        await self._store.set(detail)
        cooldown.reset()

        logger.info(
            "Access token acquired",
            mode=config.mode.value,
            expires_in=detail.expires_in,
        )
        audit_log(
            AuditEvent.AUTH_SUCCESS,
            mode=config.mode.value,
            client_id=detail.client_id,
            status_code=response.status,
        )
        return detail
