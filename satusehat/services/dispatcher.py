"""
Authenticated request dispatch across SatuSehat API families.

Builds the request URL from the mode, the API family and a path, attaches the
bearer token from AuthManager and performs the call. Status codes are left to
the caller.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

import aiohttp
from multidict import CIMultiDict, MultiDict, MultiDictProxy

from satusehat.auth.manager import AuthManager
from satusehat.config.endpoints import BASE, ApiFamily, get_endpoint_url
from satusehat.config.logging import get_logger
from satusehat.config.settings import ConfigResolver
from satusehat.services.http import APIResponse, send

logger = get_logger(__name__)

QueryParams = Union[
    MultiDict,
    MultiDictProxy,
    Mapping[str, Any],
    Iterable[tuple[str, Any]],
]


@dataclass(frozen=True)
class RequestSpec:
    """One outgoing API call."""

    api: ApiFamily | str
    path: str
    params: QueryParams | None = None
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    timeout: float | None = None


def build_url(base: str, path: str) -> str:
    """
    Join a base URL and a path without losing the base's sub-path.

    The base is treated as a directory and leading slashes are stripped from
    the path, so build_url("https://host/api/v1", "/Resource") gives
    "https://host/api/v1/Resource".
    """
    normalized_base = base if base.endswith("/") else base + "/"
    return urljoin(normalized_base, path.lstrip("/"))


def encode_params(params: QueryParams) -> str:
    """
    Serialize query parameters, keeping order and duplicate keys.

    Accepts a MultiDict, a plain mapping or a sequence of key/value pairs.
    """
    # MultiDict.items() yields every value of a repeated key
    if isinstance(params, Mapping):
        pairs = list(params.items())
    else:
        pairs = [(key, value) for key, value in params]

    return urlencode([(str(key), "" if value is None else str(value)) for key, value in pairs])


def with_query(url: str, params: QueryParams | None) -> str:
    """Replace the query string of url when params are given."""
    if params is None:
        return url
    scheme, netloc, path, _, fragment = urlsplit(url)
    return urlunsplit((scheme, netloc, path, encode_params(params), fragment))


class RequestDispatcher:
    """
    Sends authenticated requests to any SatuSehat API family.

    Use the "base" family for endpoints that have no dedicated family; the
    path is then resolved against the host root, e.g.
    RequestSpec(api="base", path="/masterdata/v1/mastersaranaindex/mastersarana").
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        auth_manager: AuthManager,
        session: aiohttp.ClientSession | None = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            resolver: Source of the environment mode and timeouts
            auth_manager: Provides the bearer token
            session: Optional aiohttp session to reuse for every call
        """
        self._resolver = resolver
        self._auth_manager = auth_manager
        self._session = session

    async def resolve_url(self, spec: RequestSpec) -> str:
        """Absolute URL, including query string, for a request."""
        config = await self._resolver.resolve()
        api = spec.api if spec.api == BASE else ApiFamily(spec.api)
        base_url = get_endpoint_url(config.mode, api)
        return with_query(build_url(base_url, spec.path), spec.params)

    async def request(self, spec: RequestSpec) -> APIResponse:
        """
        Perform an authenticated request.

        Args:
            spec: Request description

        Returns:
            The response, whatever its status

        Raises:
            CredentialsMissingError: If credentials are not configured
            AuthenticationFailedError: If the token request is rejected
            TransportError: On network failure
        """
        config = await self._resolver.resolve()
        url = await self.resolve_url(spec)

        auth = await self._auth_manager.auth()
        # Caller headers replace the bearer header regardless of case
        headers = CIMultiDict({"Authorization": auth.authorization_header})
        headers.update(spec.headers)

        method = spec.method.upper()
        logger.debug(
            "Dispatching request",
            method=method,
            api=getattr(spec.api, "value", spec.api),
            url=url,
        )

        return await send(
            method,
            url,
            headers=headers,
            data=spec.body,
            timeout=spec.timeout or config.request_timeout,
            session=self._session,
        )
