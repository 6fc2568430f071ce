"""
PythConnector — Pyth Hermes price updates over the HTTP capability.

Hermes answers `GET /v2/updates/price/latest?ids[]=...` with a JSON body
whose `parsed` list carries one entry per requested feed. Prices are
integers scaled by `10**expo`.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import urlencode

import structlog
from pydantic import BaseModel, Field, ValidationError

from chainpilot.connectors.base_connector import BaseConnector
from chainpilot.connectors.http_connector import HTTPConnector
from chainpilot.errors import DecodeError

logger = structlog.get_logger(__name__)

LATEST_PRICE_PATH = "/v2/updates/price/latest"
SIGNIFICANT_DIGITS = 8


# ── Response Models ──────────────────────────────────────────────────


class PythPrice(BaseModel):
    price: str
    conf: str = "0"
    expo: int
    publish_time: int = 0


class PythPriceUpdate(BaseModel):
    id: str
    price: PythPrice
    ema_price: PythPrice | None = None


class PythResponse(BaseModel):
    parsed: list[PythPriceUpdate] = Field(default_factory=list)


def latest_price_url(base_url: str, feed_ids: list[str]) -> str:
    """Build the Hermes latest-price URL for `feed_ids` (in order)."""
    query = urlencode([("ids[]", feed_id) for feed_id in feed_ids])
    return f"{base_url.rstrip('/')}{LATEST_PRICE_PATH}?{query}"


def format_pyth_price(price: str | int, expo: int) -> str:
    """
    Render `price * 10**expo` with 8 significant digits and thousands
    separators, trailing zeros dropped: ("6500012345678", -8) -> "65,000.123".
    """
    value = Decimal(int(price)).scaleb(expo)
    if value == 0:
        return "0"
    exponent = value.adjusted() - (SIGNIFICANT_DIGITS - 1)
    rounded = value.quantize(Decimal(1).scaleb(exponent), rounding=ROUND_HALF_UP)
    decimals = max(0, -exponent)
    text = f"{rounded:,.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


# ── Client ───────────────────────────────────────────────────────────


class AsyncPythClient:
    """Reads Hermes through the shared HTTP connector."""

    def __init__(self, http: HTTPConnector):
        self._http = http

    async def fetch_price_updates(self, url: str) -> PythResponse:
        """
        GET a full Hermes URL and validate the body.

        Raises:
            HTTPReadError: Non-200 status or transport failure.
            DecodeError: Body is not a Hermes price response.
        """
        body = await self._http.client.get_json(url)
        try:
            response = PythResponse.model_validate(body)
        except ValidationError as e:
            raise DecodeError("Unexpected Pyth response shape", detail=str(e)) from e
        logger.debug("pyth_prices_fetched", url=url, count=len(response.parsed))
        return response

    async def get_latest_price_updates(self, base_url: str, feed_ids: list[str]) -> PythResponse:
        return await self.fetch_price_updates(latest_price_url(base_url, feed_ids))


# ── Connector ────────────────────────────────────────────────────────


class PythConnector(BaseConnector):
    @property
    def name(self) -> str:
        return "pyth"

    @property
    def icon(self) -> str:
        return "🔮"

    @property
    def description(self) -> str:
        return "Latest Pyth price updates from Hermes"

    def __init__(self, http: HTTPConnector):
        self.client = AsyncPythClient(http)
