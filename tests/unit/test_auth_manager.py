"""
Tests for the access token manager.
"""

import asyncio
from unittest.mock import patch

import aiohttp
import pytest

from satusehat.auth.cooldown import AuthCooldown
from satusehat.auth.manager import AuthManager
from satusehat.auth.store import InMemoryAuthStore
from satusehat.config.settings import ConfigResolver
from satusehat.errors import (
    AuthCooldownError,
    AuthenticationFailedError,
    CredentialsMissingError,
    TransportError,
)
from satusehat.models.auth import AuthDetail

TOKEN_URL_PART = "/oauth2/v1/accesstoken"


@pytest.fixture
def manager(credentials, token_session):
    return AuthManager(ConfigResolver(credentials), session=token_session)


class TestAuthManager:
    """Tests for AuthManager.auth()."""

    @pytest.mark.asyncio
    async def test_requests_token(self, manager, token_session):
        detail = await manager.auth()

        assert detail.access_token == "test-access-token"
        (call,) = token_session.calls
        assert call.method == "POST"
        assert call.url == (
            "https://api-satusehat-stg.dto.kemkes.go.id/oauth2/v1/accesstoken"
            "?grant_type=client_credentials"
        )
        assert call.headers["Content-Type"] == "application/x-www-form-urlencoded"

    @pytest.mark.asyncio
    async def test_sends_credentials_as_form_fields(self, manager, token_session):
        await manager.auth()

        assert token_session.calls[0].data == {
            "client_id": "test-client",
            "client_secret": "test-secret",
        }

    @pytest.mark.asyncio
    async def test_production_host(self, token_session):
        resolver = ConfigResolver({"client_secret": "c", "secret_key": "s", "mode": "production"})
        await AuthManager(resolver, session=token_session).auth()

        assert token_session.calls[0].url.startswith("https://api-satusehat.kemkes.go.id/")

    @pytest.mark.asyncio
    async def test_reuses_cached_token(self, manager, token_session):
        first = await manager.auth()
        second = await manager.auth()

        assert first == second
        assert len(token_session.calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_request(
        self, credentials, fake_session, make_token_payload
    ):
        """Callers arriving during a token request wait for it instead of sending another."""
        fake_session.add(TOKEN_URL_PART, json_body=make_token_payload(), delay=0.01)
        manager = AuthManager(ConfigResolver(credentials), session=fake_session)

        results = await asyncio.gather(*(manager.auth() for _ in range(5)))

        assert len(fake_session.calls) == 1
        assert all(result == results[0] for result in results)

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_failure(self, credentials, fake_session):
        fake_session.add(TOKEN_URL_PART, status=401, body="invalid_client", delay=0.01)
        manager = AuthManager(ConfigResolver(credentials), session=fake_session)

        results = await asyncio.gather(
            manager.auth(), manager.auth(), return_exceptions=True
        )

        assert len(fake_session.calls) == 1
        assert all(isinstance(result, AuthenticationFailedError) for result in results)

    @pytest.mark.asyncio
    async def test_refreshes_expired_token(
        self, credentials, fake_session, make_token_payload
    ):
        # Issued long enough ago to be inside the anticipation window
        stale = make_token_payload(access_token="stale", issued_at=1_000, expires_in=3599)
        fresh = make_token_payload(access_token="fresh")
        fake_session.add(TOKEN_URL_PART, json_body=fresh)
        store = InMemoryAuthStore()
        await store.set(AuthDetail.model_validate(stale))

        manager = AuthManager(ConfigResolver(credentials), store=store, session=fake_session)

        assert (await manager.auth()).access_token == "fresh"
        assert len(fake_session.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_credentials(self, token_session):
        """Should fail before any network call."""
        manager = AuthManager(ConfigResolver({"client_secret": "only-half"}), session=token_session)

        with pytest.raises(CredentialsMissingError) as exc_info:
            await manager.auth()

        assert exc_info.value.missing == ["secret_key"]
        assert token_session.calls == []

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, credentials, fake_session):
        fake_session.add(TOKEN_URL_PART, status=401, body='{"fault": "Invalid client"}')
        manager = AuthManager(ConfigResolver(credentials), session=fake_session)

        with pytest.raises(AuthenticationFailedError) as exc_info:
            await manager.auth()

        assert exc_info.value.status == 401
        assert exc_info.value.message == 'Authentication failed. {"fault": "Invalid client"}'

    @pytest.mark.asyncio
    async def test_failure_not_cached(self, credentials, fake_session, make_token_payload):
        fake_session.add(TOKEN_URL_PART, status=500, body="upstream down")
        manager = AuthManager(ConfigResolver(credentials), session=fake_session)

        with pytest.raises(AuthenticationFailedError):
            await manager.auth()

        fake_session._routes.clear()
        fake_session.add(TOKEN_URL_PART, json_body=make_token_payload())

        assert (await manager.auth()).access_token == "test-access-token"
        assert len(fake_session.calls) == 2

    @pytest.mark.asyncio
    async def test_invalid_json(self, credentials, fake_session):
        fake_session.add(TOKEN_URL_PART, body="<html>maintenance</html>")
        manager = AuthManager(ConfigResolver(credentials), session=fake_session)

        with pytest.raises(AuthenticationFailedError) as exc_info:
            await manager.auth()

        assert exc_info.value.body == "<html>maintenance</html>"

    @pytest.mark.asyncio
    async def test_transport_error(self, credentials, fake_session):
        fake_session.add_error(TOKEN_URL_PART, aiohttp.ClientConnectionError("refused"))
        manager = AuthManager(ConfigResolver(credentials), session=fake_session)

        with pytest.raises(TransportError):
            await manager.auth()

    @pytest.mark.asyncio
    @patch("satusehat.auth.manager.audit_log")
    async def test_audits_success(self, mock_audit, manager):
        await manager.auth()

        mock_audit.assert_called_once()
        assert mock_audit.call_args[0][0] == "auth.success"
        assert mock_audit.call_args[1]["client_id"] == "test-client-id"

    @pytest.mark.asyncio
    async def test_store_replaceable(self, manager, token_session):
        store = InMemoryAuthStore()
        manager.store = store

        await manager.auth()

        assert manager.store is store
        assert await store.get() is not None


class TestAuthCooldown:
    """Tests for the failure cooldown."""

    def test_disabled_by_default(self):
        cooldown = AuthCooldown()
        cooldown.record_failure()

        assert cooldown.enabled is False
        assert cooldown.remaining() == 0.0

    def test_blocks_after_failure(self):
        cooldown = AuthCooldown(60)
        cooldown.record_failure()

        assert 59 < cooldown.remaining() <= 60

    def test_window_elapses(self):
        with patch("satusehat.auth.cooldown.time.monotonic", side_effect=[100.0, 161.0]):
            cooldown = AuthCooldown(60)
            cooldown.record_failure()
            assert cooldown.remaining() == 0.0

    def test_reset(self):
        cooldown = AuthCooldown(60)
        cooldown.record_failure()
        cooldown.reset()

        assert cooldown.remaining() == 0.0

    @pytest.mark.asyncio
    async def test_manager_holds_back_after_failure(self, fake_session):
        fake_session.add(TOKEN_URL_PART, status=401, body="invalid_client")
        resolver = ConfigResolver(
            {"client_secret": "c", "secret_key": "s", "auth_failure_cooldown_seconds": 60}
        )
        manager = AuthManager(resolver, session=fake_session)

        with pytest.raises(AuthenticationFailedError):
            await manager.auth()
        with pytest.raises(AuthCooldownError) as exc_info:
            await manager.auth()

        assert exc_info.value.retry_after > 0
        assert len(fake_session.calls) == 1

    @pytest.mark.asyncio
    async def test_no_cooldown_without_setting(self, credentials, fake_session):
        fake_session.add(TOKEN_URL_PART, status=401, body="invalid_client")
        manager = AuthManager(ConfigResolver(credentials), session=fake_session)

        for _ in range(2):
            with pytest.raises(AuthenticationFailedError):
                await manager.auth()

        assert len(fake_session.calls) == 2
