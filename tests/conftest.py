"""
Shared pytest fixtures for SatuSehat client tests.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from satusehat.models.auth import now_ms

ENV_VARS = (
    "IHS_CLIENT_SECRET",
    "IHS_SECRET_KEY",
    "IHS_MODE",
    "IHS_KYC_PEM_FILE",
    "IHS_REQUEST_TIMEOUT",
    "IHS_AUTH_FAILURE_COOLDOWN_SECONDS",
    "IHS_REDIS_URL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's environment and .env file out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_default_client(monkeypatch):
    """Reset the default client between tests to avoid state leakage."""
    monkeypatch.setattr("satusehat.client._client", None)


@dataclass
class RecordedCall:
    """One request seen by FakeSession."""

    method: str
    url: str
    headers: dict[str, str]
    data: Any


class FakeResponse:
    """Stand-in for aiohttp.ClientResponse used as an async context manager."""

    def __init__(
        self,
        status: int = 200,
        body: bytes | str = b"",
        headers: dict[str, str] | None = None,
        url: str = "",
        delay: float = 0,
    ):
        self.status = status
        self._body = body.encode() if isinstance(body, str) else body
        self.headers = headers or {}
        self.url = url
        self._delay = delay

    async def read(self) -> bytes:
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


Responder = Callable[[RecordedCall], FakeResponse]


@dataclass
class FakeSession:
    """
    Minimal aiohttp.ClientSession replacement.

    Routes match on a URL substring; the first matching route answers.
    """

    calls: list[RecordedCall] = field(default_factory=list)
    _routes: list[tuple[str, Responder | Exception]] = field(default_factory=list)

    def add(
        self,
        url_part: str,
        status: int = 200,
        json_body: Any = None,
        body: bytes | str = b"",
        delay: float = 0,
    ) -> None:
        if json_body is not None:
            body = json.dumps(json_body)
            headers = {"Content-Type": "application/json"}
        else:
            headers = {"Content-Type": "text/plain"}

        def responder(call: RecordedCall) -> FakeResponse:
            return FakeResponse(status, body, headers, call.url, delay)

        self._routes.append((url_part, responder))

    def add_responder(self, url_part: str, responder: Responder) -> None:
        self._routes.append((url_part, responder))

    def add_error(self, url_part: str, error: Exception) -> None:
        self._routes.append((url_part, error))

    def request(self, method, url, headers=None, data=None, timeout=None):
        call = RecordedCall(method, str(url), dict(headers or {}), data)
        self.calls.append(call)
        for url_part, route in self._routes:
            if url_part in call.url:
                if isinstance(route, Exception):
                    raise route
                return route(call)
        return FakeResponse(404, b'{"error": "not found"}', {}, call.url)

    def calls_to(self, url_part: str) -> list[RecordedCall]:
        return [call for call in self.calls if url_part in call.url]


def token_payload(
    access_token: str = "test-access-token",
    issued_at: int | None = None,
    expires_in: int = 3599,
) -> dict[str, Any]:
    """Token endpoint response as SatuSehat returns it (numbers as strings)."""
    return {
        "refresh_token_expires_in": "0",
        "api_product_list": "[api-dev]",
        "api_product_list_json": ["api-dev"],
        "organization_name": "ihs-prod-1",
        "developer.email": "dev@example.org",
        "token_type": "BearerToken",
        "issued_at": str(now_ms() if issued_at is None else issued_at),
        "client_id": "test-client-id",
        "access_token": access_token,
        "application_name": "test-application",
        "scope": "",
        "expires_in": str(expires_in),
        "refresh_count": "0",
        "status": "approved",
    }


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def token_session(fake_session) -> FakeSession:
    """Fake session whose token endpoint succeeds."""
    fake_session.add("/oauth2/v1/accesstoken", json_body=token_payload())
    return fake_session


@pytest.fixture
def credentials() -> dict[str, str]:
    return {"client_secret": "test-client", "secret_key": "test-secret"}


@pytest.fixture(scope="session")
def server_private_key() -> rsa.RSAPrivateKey:
    """Long-lived key pair of the simulated KYC server."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def server_pem_file(tmp_path, server_private_key) -> str:
    path = tmp_path / "publickey.sandbox.pem"
    path.write_bytes(
        server_private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return str(path)


@pytest.fixture
def make_token_payload():
    """Factory for token endpoint responses."""
    return token_payload


@pytest.fixture
def make_response():
    """Factory for responses returned by FakeSession responders."""
    return FakeResponse
