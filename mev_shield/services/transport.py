"""
Outbound JSON-over-HTTP transport for relays and read upstreams.

HTTP status codes are not inspected: relays report rejections inside the
JSON-RPC body, which the caller classifies. Two failure kinds are raised:

- TransportError: no response arrived (connect error, timeout, bad URL)
- MalformedResponseError: a response arrived but its body was not JSON

Exception messages never include the URL; relay URLs often embed API keys.
"""

from typing import Any, Optional, Protocol

import httpx


class TransportError(Exception):
    """The request never produced a response."""

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


class MalformedResponseError(Exception):
    """A response was received but could not be decoded as JSON."""

    def __init__(self, status_code: int):
        super().__init__(f"non-JSON response (HTTP {status_code})")
        self.status_code = status_code


class HttpTransport(Protocol):
    async def post_json(self, url: str, body: Any, timeout: float) -> Any: ...


class HttpxTransport:
    """httpx-backed transport sharing one connection pool across requests."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(
            headers={"content-type": "application/json"},
            follow_redirects=True,
        )

    async def post_json(self, url: str, body: Any, timeout: float) -> Any:
        try:
            response = await self._client.post(url, json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            raise TransportError(f"timed out after {timeout}s", timed_out=True) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(response.status_code) from e

    async def aclose(self) -> None:
        await self._client.aclose()
