"""
Tests for the consent service.
"""

import json

import aiohttp
import pytest

from satusehat.auth.manager import AuthManager
from satusehat.config.settings import ConfigResolver
from satusehat.services.consent import Consent, operation_outcome
from satusehat.services.dispatcher import RequestDispatcher

CONSENT_URL = "/consent/v1/Consent"

CONSENT = {
    "resourceType": "Consent",
    "id": "c0b3b0f1",
    "status": "active",
    "patient": {"reference": "Patient/P02478375538"},
}


def consent_service(config, session):
    resolver = ConfigResolver(config)
    return Consent(RequestDispatcher(resolver, AuthManager(resolver, session=session), session))


@pytest.fixture
def consent(credentials, token_session):
    return consent_service(credentials, token_session)


def outcome_text(result):
    return result["issue"][0]["details"]["text"]


class TestOperationOutcome:
    """Tests for operation_outcome."""

    def test_shape(self):
        assert operation_outcome("boom") == {
            "resourceType": "OperationOutcome",
            "issue": [
                {"code": "exception", "severity": "error", "details": {"text": "boom"}}
            ],
        }

    def test_empty_text(self):
        assert outcome_text(operation_outcome("")) == "unknown error"


class TestConsentGet:
    """Tests for Consent.get."""

    @pytest.mark.asyncio
    async def test_success(self, consent, token_session):
        token_session.add(CONSENT_URL, json_body=CONSENT)

        result = await consent.get("P02478375538")

        assert result == CONSENT
        call = token_session.calls_to(CONSENT_URL)[0]
        assert call.method == "GET"
        assert call.url.endswith("/consent/v1/Consent?patient_id=P02478375538")

    @pytest.mark.asyncio
    async def test_client_error_passed_through(self, consent, token_session):
        """4xx bodies are returned as the server sent them."""
        outcome = {
            "resourceType": "OperationOutcome",
            "issue": [{"code": "not-found", "severity": "error"}],
        }
        token_session.add(CONSENT_URL, status=404, json_body=outcome)

        assert await consent.get("P0") == outcome

    @pytest.mark.asyncio
    async def test_server_error(self, consent, token_session):
        token_session.add(CONSENT_URL, status=502, body="Bad Gateway")

        result = await consent.get("P02478375538")

        assert result["resourceType"] == "OperationOutcome"
        assert outcome_text(result) == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_transport_error(self, consent, token_session):
        token_session.add_error(CONSENT_URL, aiohttp.ClientConnectionError("reset"))

        result = await consent.get("P02478375538")

        assert result["resourceType"] == "OperationOutcome"
        assert "reset" in outcome_text(result)

    @pytest.mark.asyncio
    async def test_missing_credentials(self, token_session):
        result = await consent_service({}, token_session).get("P02478375538")

        assert result["resourceType"] == "OperationOutcome"
        assert "Missing credentials" in outcome_text(result)
        assert token_session.calls == []

    @pytest.mark.asyncio
    async def test_invalid_json(self, consent, token_session):
        token_session.add(CONSENT_URL, status=200, body="<html></html>")

        result = await consent.get("P02478375538")
        assert result["resourceType"] == "OperationOutcome"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["[]", '"accepted"', "null"])
    async def test_non_object_json(self, consent, token_session, body):
        """JSON that is not an object becomes an OperationOutcome."""
        token_session.add(CONSENT_URL, status=200, body=body)

        result = await consent.get("P02478375538")

        assert result["resourceType"] == "OperationOutcome"
        assert body in outcome_text(result)


class TestConsentUpdate:
    """Tests for Consent.update."""

    @pytest.mark.asyncio
    async def test_posts_decision(self, consent, token_session):
        token_session.add(CONSENT_URL, status=201, json_body=CONSENT)

        result = await consent.update("P02478375538", "OPTIN", "Dr. Budi")

        assert result == CONSENT
        call = token_session.calls_to(CONSENT_URL)[0]
        assert call.method == "POST"
        assert call.headers["Content-Type"] == "application/json"
        assert json.loads(call.data) == {
            "patient_id": "P02478375538",
            "action": "OPTIN",
            "agent": "Dr. Budi",
        }

    @pytest.mark.asyncio
    async def test_server_error(self, consent, token_session):
        token_session.add(CONSENT_URL, status=500, body="Internal Server Error")

        result = await consent.update("P02478375538", "OPTOUT", "Dr. Budi")

        assert outcome_text(result) == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_update_non_object_json(self, consent, token_session):
        token_session.add(CONSENT_URL, status=201, body="[]")

        result = await consent.update("P02478375538", "OPTIN", "Dr. Budi")

        assert result["resourceType"] == "OperationOutcome"
