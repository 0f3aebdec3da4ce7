"""
HTTP transport built on aiohttp.

Every outbound call goes through send(). The response body is read while the
connection is open and returned as an APIResponse, so callers can inspect it
after the session has been closed.
"""

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from satusehat.config.logging import get_logger
from satusehat.constants import REQUEST_TIMEOUT_SECONDS
from satusehat.errors import TransportError

logger = get_logger(__name__)


@dataclass(frozen=True)
class APIResponse:
    """HTTP response with a fully read body."""

    status: int
    url: str
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value.split(";")[0].strip().lower()
        return ""

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON
        """
        return json.loads(self.body)


async def send(
    method: str,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    data: Any = None,
    timeout: float | None = None,
    session: aiohttp.ClientSession | None = None,
) -> APIResponse:
    """
    Perform an HTTP request.

    Args:
        method: HTTP method
        url: Absolute request URL
        headers: Request headers
        data: Request body (str, bytes, or a mapping sent form-encoded)
        timeout: Total timeout in seconds
        session: Existing session to reuse; a short-lived one is created if None

    Returns:
        APIResponse with status, headers and body

    Raises:
        TransportError: On connection failures and timeouts
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout or REQUEST_TIMEOUT_SECONDS)

    try:
        if session is not None:
            return await _perform(session, method, url, headers, data, client_timeout)

        async with aiohttp.ClientSession(timeout=client_timeout) as owned_session:
            return await _perform(owned_session, method, url, headers, data, client_timeout)

    except aiohttp.ClientError as e:
        logger.warning("HTTP request failed", method=method, url=url, error=str(e))
        raise TransportError(url, str(e)) from e
    except asyncio.TimeoutError as e:
        logger.warning("HTTP request timed out", method=method, url=url)
        raise TransportError(url, "timed out") from e


async def _perform(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    headers: Mapping[str, str] | None,
    data: Any,
    timeout: aiohttp.ClientTimeout,
) -> APIResponse:
    async with session.request(
        method,
        url,
        headers=dict(headers or {}),
        data=data,
        timeout=timeout,
    ) as resp:
        body = await resp.read()
        logger.debug("HTTP response", method=method, url=url, status_code=resp.status)
        return APIResponse(
            status=resp.status,
            url=str(resp.url),
            body=body,
            headers=dict(resp.headers),
        )
