"""HTTPS transport for the K2Think web API.

Thin wrapper over httpx.AsyncClient that owns the browser-like default
headers and the Cookie header. Two request shapes: plain JSON
request/response, and a streaming POST whose body is yielded as text.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from k2think.auth.cookies import encode_cookies
from k2think.config import Settings
from k2think.errors import EncodingError, StreamDecodeError, TransportError

logger = logging.getLogger(__name__)


def build_default_headers(settings: Settings) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Accept": "text/event-stream",
        "Origin": settings.base_url,
        "Referer": f"{settings.base_url}/",
        "User-Agent": settings.user_agent,
        "sec-fetch-dest": "empty",
        "sec-fetch-mode": "cors",
        "sec-fetch-site": "same-origin",
    }


def build_cookie_header(raw_cookies: str) -> str:
    """Encode raw cookies for the Cookie header.

    Raises EncodingError if the result still cannot travel in an HTTP
    header (non-ASCII cookie names survive encoding).
    """
    encoded = encode_cookies(raw_cookies)
    try:
        encoded.encode("ascii")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Cookie header is not ASCII-safe after encoding: {e.reason}") from e
    return encoded


class TransportClient:
    """Async HTTP client bound to one remote host and one cookie string."""

    def __init__(
        self,
        settings: Settings,
        cookies: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._raw_cookies = cookies
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self._raw_cookies)

    @property
    def started(self) -> bool:
        return self._http is not None

    async def start(self) -> None:
        """Initialize the httpx client with headers, cookies and timeouts."""
        if self._http is not None:
            return
        settings = self._settings
        headers = build_default_headers(settings)
        if self._raw_cookies:
            headers["Cookie"] = build_cookie_header(self._raw_cookies)
        else:
            logger.warning("No cookies configured -- authenticated calls will fail")

        timeout = httpx.Timeout(
            connect=settings.timeout_connect,
            read=settings.timeout_read,
            write=10.0,
            pool=10.0,
        )
        limits = httpx.Limits(max_connections=10, max_keepalive_connections=5)

        self._http = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=headers,
            timeout=timeout,
            limits=limits,
            transport=self._transport,
        )
        logger.info("httpx client initialized for %s", settings.host)

    async def close(self) -> None:
        """Clean up httpx client."""
        if self._http:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if not self._http:
            raise RuntimeError("httpx client not initialized -- call start() first")
        return self._http

    async def request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Non-streaming request. Returns decoded JSON, or raw text if not JSON.

        Raises TransportError on non-2xx status or network failure.
        """
        http = self._client()
        try:
            response = await http.request(method, path, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(None, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            logger.warning("%s %s failed with HTTP %d", method, path, response.status_code)
            raise TransportError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError:
            return response.text

    async def stream_text(
        self,
        path: str,
        payload: dict[str, Any],
    ) -> AsyncGenerator[str, None]:
        """Streaming POST. Yields decoded body text as it arrives.

        A non-2xx status raises StreamDecodeError carrying the raw error body
        before anything is yielded.
        """
        http = self._client()
        try:
            async with http.stream("POST", path, json=payload) as response:
                if not response.is_success:
                    error_body = await response.aread()
                    raise StreamDecodeError(
                        response.status_code,
                        error_body.decode("utf-8", errors="replace"),
                    )
                async for text in response.aiter_text():
                    yield text
        except httpx.HTTPError as e:
            raise TransportError(None, f"{type(e).__name__}: {e}") from e
