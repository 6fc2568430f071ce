#!/usr/bin/env python3
"""
Check native and ERC-20 balances for a set of named accounts.

Usage:
    python scripts/check_balances.py
    python scripts/check_balances.py --account Maker=0x955b... --token USDC=0x1c7D...
    python scripts/check_balances.py --chain ethereum-testnet-sepolia-base-1
"""

import argparse
import asyncio
import os
import sys

# Ensure the project root is on sys.path for `chainpilot` imports
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import structlog
from web3 import Web3

from chainpilot.config import get_platform_settings
from chainpilot.connectors.evm_connector import (
    EVMConnector,
    decode_function_result,
    encode_function_data,
)
from chainpilot.contracts import IERC20_ABI
from chainpilot.errors import ChainPilotError
from chainpilot.logging import setup_logging

logger = structlog.get_logger("check_balances")

SEPOLIA = "ethereum-testnet-sepolia"

DEFAULT_ACCOUNTS = {
    "Maker": "0x955bc37114f42F0ABf209C81E41FEf5Cc53Cb51f",
    "Taker": "0x0DBA585a86bb828708b14d2F83784564Ae03a5d0",
}
DEFAULT_TOKENS = {
    "USDC": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
    "WETH": "0x7b79995e5f793A07Bc00c21412e50Ecae098E7f9",
}


def parse_named(values: list[str] | None, default: dict[str, str]) -> dict[str, str]:
    """Turn ["Name=0xabc", ...] into {"Name": "0xabc"}."""
    if not values:
        return dict(default)
    named = {}
    for item in values:
        name, sep, address = item.partition("=")
        if not sep:
            raise ValueError(f"Expected NAME=ADDRESS, got {item!r}")
        named[name] = address
    return named


async def check_balances(chain: str, accounts: dict[str, str], tokens: dict[str, str]) -> None:
    connector = EVMConnector(get_platform_settings())
    client = connector.client(chain)
    try:
        for name, address in accounts.items():
            wei = await client.get_balance(address)
            print(f"{name} ETH Balance: {Web3.from_wei(wei, 'ether')} ETH")

            for symbol, token in tokens.items():
                raw = await client.call_contract(
                    token, encode_function_data(IERC20_ABI, "balanceOf", [address]), block="latest"
                )
                balance = decode_function_result(IERC20_ABI, "balanceOf", raw)
                print(f"{name} {symbol} Balance: {balance} (wei)")
            print("---")
    finally:
        await connector.teardown()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check account balances")
    parser.add_argument("--chain", default=SEPOLIA, help="Chain selector name")
    parser.add_argument("--account", action="append", help="NAME=ADDRESS (repeatable)")
    parser.add_argument("--token", action="append", help="SYMBOL=ADDRESS (repeatable)")
    args = parser.parse_args(argv)

    settings = get_platform_settings()
    setup_logging(level=settings.log_level_number, json_output=settings.log_json)

    try:
        accounts = parse_named(args.account, DEFAULT_ACCOUNTS)
        tokens = parse_named(args.token, DEFAULT_TOKENS)
        asyncio.run(check_balances(args.chain, accounts, tokens))
    except (ChainPilotError, ValueError) as e:
        logger.error("check_balances_failed", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
