"""
HTTPConnector — Async HTTP GET capability for workflows.

Every off-chain read a workflow does (Pyth prices, proof-of-reserve feeds)
goes through `AsyncHTTPClient`. A request either yields an `HTTPResponse`
or raises `HTTPReadError`; a non-200 status is never silently turned into
a value.

Usage:
    http = get_connector_registry().get("http")
    resp = await http.client.send_request("GET", url)
    data = await http.client.get_json(url)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from chainpilot.config import PlatformSettings
from chainpilot.connectors.base_connector import BaseConnector
from chainpilot.errors import DecodeError, HTTPReadError

logger = structlog.get_logger(__name__)


@dataclass
class HTTPResponse:
    """Raw response as seen by a workflow."""

    status_code: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Decode the body as JSON. Raises DecodeError on malformed input."""
        try:
            return json.loads(self.body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Response body is not valid JSON: {e}") from e


# ── Async HTTP Client ────────────────────────────────────────────────


class AsyncHTTPClient:
    """
    Async HTTP client with HTTP/2 and connection pooling.

    No retries: a failed request fails the workflow run, and the next
    scheduled run tries again.
    """

    def __init__(self, timeout: float = 30.0):
        self._client = httpx.AsyncClient(
            http2=True,
            follow_redirects=True,
            timeout=httpx.Timeout(timeout, connect=10.0),
            limits=httpx.Limits(
                max_connections=10,
                max_keepalive_connections=5,
                keepalive_expiry=30.0,
            ),
        )

    async def send_request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> HTTPResponse:
        """
        Send a request and return the raw response, whatever its status.

        Raises:
            HTTPReadError: On connection failure or timeout.
        """
        start = time.monotonic()
        try:
            resp = await self._client.request(method, url, headers=headers, content=body)
        except httpx.TimeoutException as e:
            raise HTTPReadError(f"Request timed out: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise HTTPReadError(f"Request failed: {e}", url=url) from e

        logger.debug(
            "http_request",
            method=method,
            url=url,
            status=resp.status_code,
            latency_ms=round((time.monotonic() - start) * 1000),
        )
        return HTTPResponse(
            status_code=resp.status_code,
            body=resp.content,
            headers=dict(resp.headers),
        )

    async def get(self, url: str, *, headers: dict[str, str] | None = None) -> HTTPResponse:
        """GET that insists on a 200 response."""
        resp = await self.send_request("GET", url, headers=headers)
        if resp.status_code != 200:
            raise HTTPReadError(
                f"HTTP request failed with status: {resp.status_code}",
                status_code=resp.status_code,
                url=url,
            )
        return resp

    async def get_json(self, url: str, *, headers: dict[str, str] | None = None) -> Any:
        """GET a 200 response and decode its body as JSON."""
        resp = await self.get(url, headers={"Accept": "application/json", **(headers or {})})
        return resp.json()

    async def close(self) -> None:
        await self._client.aclose()


# ── Connector ────────────────────────────────────────────────────────


class HTTPConnector(BaseConnector):
    """Outbound HTTP for off-chain reads."""

    @property
    def name(self) -> str:
        return "http"

    @property
    def icon(self) -> str:
        return "🌐"

    @property
    def description(self) -> str:
        return "Fetch off-chain data over HTTP"

    def __init__(self, settings: PlatformSettings | None = None):
        self._timeout = settings.http_timeout_seconds if settings else 30.0
        self._client: AsyncHTTPClient | None = None

    @property
    def client(self) -> AsyncHTTPClient:
        """Lazy-initializes on first access."""
        if self._client is None:
            self._client = AsyncHTTPClient(timeout=self._timeout)
        return self._client

    async def teardown(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
