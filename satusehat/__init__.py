"""Async client for the SatuSehat national health-data platform APIs."""

from satusehat.auth import AuthManager, AuthStore, InMemoryAuthStore, RedisAuthStore
from satusehat.client import SatuSehatClient, get_client, reset_client
from satusehat.config import ApiFamily, ConfigResolver, Mode, Settings, configure_logging
from satusehat.models import AuthDetail, KycResult
from satusehat.services.dispatcher import RequestDispatcher, RequestSpec, build_url
from satusehat.services.http import APIResponse

__version__ = "0.3.0"

__all__ = [
    "SatuSehatClient",
    "get_client",
    "reset_client",
    "Settings",
    "ConfigResolver",
    "Mode",
    "ApiFamily",
    "configure_logging",
    "AuthManager",
    "AuthStore",
    "InMemoryAuthStore",
    "RedisAuthStore",
    "AuthDetail",
    "KycResult",
    "RequestDispatcher",
    "RequestSpec",
    "build_url",
    "APIResponse",
]
