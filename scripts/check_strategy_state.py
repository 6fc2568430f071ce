#!/usr/bin/env python3
"""
Inspect an Aqua strategy: compute its hash and read its token balances.

The strategy hash is keccak256(abi.encode((maker, token0, token1, feeBps, salt))).
Balances come from the Aqua contract the app points at (`app.AQUA()`).
Exits 1 when nothing is deployed at that address.

Usage:
    MAKER_PRIVATE_KEY=0x... python scripts/check_strategy_state.py
    python scripts/check_strategy_state.py --maker 0x955b... --salt 0x...10
"""

import argparse
import asyncio
import os
import sys

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import structlog
from dotenv import load_dotenv
from eth_abi import encode as abi_encode
from web3 import Web3

from chainpilot.config import get_platform_settings
from chainpilot.connectors.evm_connector import (
    EVMConnector,
    decode_function_result,
    encode_function_data,
    load_account,
)
from chainpilot.contracts import AQUA_ABI, AQUA_APP_ABI
from chainpilot.errors import ChainPilotError
from chainpilot.logging import setup_logging

logger = structlog.get_logger("check_strategy_state")

SEPOLIA = "ethereum-testnet-sepolia"
WETH = "0x7b79995e5f793A07Bc00c21412e50Ecae098E7f9"
USDC = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
XYC_SWAP = "0x48393f1D300671CA9c8a8Ec7cfD973B4f87059E0"
DEFAULT_SALT = "0x" + "00" * 31 + "10"

STRATEGY_TYPE = "(address,address,address,uint256,bytes32)"


def encode_strategy(maker: str, token0: str, token1: str, fee_bps: int, salt: bytes) -> bytes:
    return abi_encode([STRATEGY_TYPE], [(maker, token0, token1, fee_bps, salt)])


def strategy_hash(maker: str, token0: str, token1: str, fee_bps: int, salt: bytes) -> bytes:
    return bytes(Web3.keccak(encode_strategy(maker, token0, token1, fee_bps, salt)))


async def check_strategy(chain: str, app: str, maker: str, salt: bytes, fee_bps: int) -> bool:
    """Print the strategy's balances. False when the app's Aqua has no code."""
    connector = EVMConnector(get_platform_settings())
    client = connector.client(chain)

    async def read(address, abi, fn_name, args=()):
        raw = await client.call_contract(
            address, encode_function_data(abi, fn_name, args), block="latest"
        )
        return decode_function_result(abi, fn_name, raw)

    try:
        digest = strategy_hash(maker, WETH, USDC, fee_bps, salt)
        print(f"Strategy hash: 0x{digest.hex()}")

        aqua = await read(app, AQUA_APP_ABI, "AQUA")
        logger.info("aqua_resolved", app=app, aqua=aqua)

        if not await client.get_code(aqua):
            print(f"No contract deployed at {aqua}.")
            return False

        for symbol, token in (("WETH", WETH), ("USDC", USDC)):
            balance, tokens_count = await read(
                aqua, AQUA_ABI, "rawBalances", [maker, app, digest, token]
            )
            print(f"Raw balance {symbol}: {balance} (tokensCount={tokens_count})")

        balance0, balance1 = await read(
            aqua, AQUA_ABI, "safeBalances", [maker, app, digest, WETH, USDC]
        )
        print(f"Strategy balances: WETH={balance0} USDC={balance1}")
        return True
    finally:
        await connector.teardown()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check Aqua strategy state")
    parser.add_argument("--chain", default=SEPOLIA)
    parser.add_argument("--app", default=XYC_SWAP, help="Aqua app (XYCSwap) address")
    parser.add_argument("--maker", help="Maker address (default: from MAKER_PRIVATE_KEY)")
    parser.add_argument("--salt", default=DEFAULT_SALT, help="32-byte hex salt")
    parser.add_argument("--fee-bps", type=int, default=0)
    args = parser.parse_args(argv)

    load_dotenv()
    settings = get_platform_settings()
    setup_logging(level=settings.log_level_number, json_output=settings.log_json)

    maker = args.maker
    if not maker:
        key = os.environ.get("MAKER_PRIVATE_KEY")
        if not key:
            logger.error("maker_missing", hint="pass --maker or set MAKER_PRIVATE_KEY")
            return 1
        try:
            maker = load_account(key, field="maker_private_key").address
        except ChainPilotError as e:
            logger.error("maker_invalid", **e.to_dict())
            return 1

    try:
        salt = bytes.fromhex(args.salt.removeprefix("0x"))
    except ValueError:
        salt = b""
    if len(salt) != 32:
        logger.error("invalid_salt", salt=args.salt)
        return 1

    try:
        deployed = asyncio.run(check_strategy(args.chain, args.app, maker, salt, args.fee_bps))
    except ChainPilotError as e:
        logger.error("check_strategy_failed", **e.to_dict())
        return 1
    return 0 if deployed else 1


if __name__ == "__main__":
    sys.exit(main())
