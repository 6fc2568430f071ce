#!/usr/bin/env python3
"""
Print the latest Pyth price updates for a set of feeds.

Usage:
    python scripts/fetch_prices.py
    python scripts/fetch_prices.py --id 0xe62df6... --id 0xc96458... --raw
"""

import argparse
import asyncio
import json
import os
import sys

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import structlog

from chainpilot.config import get_platform_settings
from chainpilot.connectors.http_connector import HTTPConnector
from chainpilot.connectors.pyth_connector import (
    PythConnector,
    format_pyth_price,
    latest_price_url,
)
from chainpilot.errors import ChainPilotError
from chainpilot.logging import setup_logging

logger = structlog.get_logger("fetch_prices")

HERMES_URL = "https://hermes.pyth.network"
DEFAULT_FEED_IDS = [
    "0xe62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43",
    "0xc96458d393fe9deb7a7d63a0ac41e2898a67a7750dbd166673279e06c868df0a",
]


async def fetch_prices(base_url: str, feed_ids: list[str], raw: bool) -> None:
    http = HTTPConnector(get_platform_settings())
    pyth = PythConnector(http)
    try:
        url = latest_price_url(base_url, feed_ids)
        if raw:
            print(json.dumps(await http.client.get_json(url), indent=2))
            return
        response = await pyth.client.fetch_price_updates(url)
        for update in response.parsed:
            price = format_pyth_price(update.price.price, update.price.expo)
            print(f"{update.id}: ${price} (publish_time={update.price.publish_time})")
    finally:
        await http.teardown()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch latest Pyth prices")
    parser.add_argument("--base-url", default=HERMES_URL)
    parser.add_argument("--id", action="append", dest="ids", help="Price feed id (repeatable)")
    parser.add_argument("--raw", action="store_true", help="Print the raw Hermes JSON")
    args = parser.parse_args(argv)

    settings = get_platform_settings()
    setup_logging(level=settings.log_level_number, json_output=settings.log_json)

    try:
        asyncio.run(fetch_prices(args.base_url, args.ids or DEFAULT_FEED_IDS, args.raw))
    except ChainPilotError as e:
        logger.error("fetch_prices_failed", **e.to_dict())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
