#!/usr/bin/env python3
"""
Maker and taker actions against an Aqua XYCSwap strategy on Sepolia.

    ship   maker approves WETH and USDC to Aqua, then ships the strategy
    dock   maker docks the strategy, withdrawing its tokens
    pull   taker pulls WETH out of the maker's strategy
    push   taker approves WETH to Aqua, then pushes it into the strategy

Keys come from MAKER_PRIVATE_KEY / TAKER_PRIVATE_KEY (.env is loaded).
`ship` prints the salt it used; pass it back with --salt to the other
actions. --dry-run prints each call's calldata instead of sending it.

Usage:
    python scripts/aqua_actions.py ship [--salt 0x...] [--weth 0.02] [--usdc 5]
    python scripts/aqua_actions.py dock --salt 0x...
    python scripts/aqua_actions.py pull --salt 0x... [--amount 0.02]
    python scripts/aqua_actions.py push --salt 0x... [--amount 0.01]
"""

import argparse
import asyncio
import os
import sys
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Any

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import structlog
from dotenv import load_dotenv
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from chainpilot.config import get_platform_settings
from chainpilot.connectors.evm_connector import (
    EVMConnector,
    encode_function_data,
    load_account,
)
from chainpilot.contracts import AQUA_ABI, IERC20_ABI
from chainpilot.errors import ChainPilotError
from chainpilot.logging import setup_logging
from scripts.check_strategy_state import (
    SEPOLIA,
    USDC,
    WETH,
    XYC_SWAP,
    encode_strategy,
    strategy_hash,
)

logger = structlog.get_logger("aqua_actions")

AQUA = to_checksum_address("0x499943e74fb0ce105688beee8ef2abec5d936d31")

WETH_DECIMALS = 18
USDC_DECIMALS = 6

MAKER_ACTIONS = ("ship", "dock")


def parse_units(value: str, decimals: int) -> int:
    """Decimal token amount to base units: ("0.02", 18) -> 2 * 10**16."""
    try:
        scaled = Decimal(value).scaleb(decimals)
    except InvalidOperation as e:
        raise ValueError(f"not a number: {value}") from e
    if scaled < 0 or scaled != scaled.to_integral_value():
        raise ValueError(f"{value} is not a whole amount at {decimals} decimals")
    return int(scaled)


def timestamp_salt() -> bytes:
    """Millisecond timestamp, left-padded to 32 bytes."""
    return int(time.time() * 1000).to_bytes(32, "big")


@dataclass(frozen=True)
class ContractCall:
    to: str
    abi: list[dict]
    fn_name: str
    args: tuple[Any, ...]

    @property
    def calldata(self) -> bytes:
        return encode_function_data(self.abi, self.fn_name, self.args)


@dataclass(frozen=True)
class Strategy:
    maker: str
    salt: bytes
    fee_bps: int = 0
    app: str = XYC_SWAP
    aqua: str = AQUA

    @property
    def encoded(self) -> bytes:
        return encode_strategy(self.maker, WETH, USDC, self.fee_bps, self.salt)

    @property
    def hash(self) -> bytes:
        return strategy_hash(self.maker, WETH, USDC, self.fee_bps, self.salt)


# ── Plans ────────────────────────────────────────────────────────────


def plan_ship(strategy: Strategy, weth_amount: int, usdc_amount: int) -> list[ContractCall]:
    return [
        ContractCall(WETH, IERC20_ABI, "approve", (strategy.aqua, weth_amount)),
        ContractCall(USDC, IERC20_ABI, "approve", (strategy.aqua, usdc_amount)),
        ContractCall(
            strategy.aqua,
            AQUA_ABI,
            "ship",
            (strategy.app, strategy.encoded, [WETH, USDC], [weth_amount, usdc_amount]),
        ),
    ]


def plan_dock(strategy: Strategy) -> list[ContractCall]:
    return [
        ContractCall(strategy.aqua, AQUA_ABI, "dock", (strategy.app, strategy.hash, [WETH, USDC]))
    ]


def plan_pull(strategy: Strategy, amount: int) -> list[ContractCall]:
    return [
        ContractCall(
            strategy.aqua,
            AQUA_ABI,
            "pull",
            (strategy.maker, strategy.app, strategy.hash, WETH, amount),
        )
    ]


def plan_push(strategy: Strategy, amount: int) -> list[ContractCall]:
    return [
        ContractCall(WETH, IERC20_ABI, "approve", (strategy.aqua, amount)),
        ContractCall(
            strategy.aqua,
            AQUA_ABI,
            "push",
            (strategy.maker, strategy.app, strategy.hash, WETH, amount),
        ),
    ]


def build_plan(args: argparse.Namespace, strategy: Strategy) -> list[ContractCall]:
    if args.action == "ship":
        return plan_ship(strategy, args.weth, args.usdc)
    if args.action == "dock":
        return plan_dock(strategy)
    if args.action == "pull":
        return plan_pull(strategy, args.amount)
    return plan_push(strategy, args.amount)


# ── Sending ──────────────────────────────────────────────────────────


async def execute(chain: str, calls: list[ContractCall], signer: LocalAccount) -> bool:
    """Send the calls in order; stop at the first one that does not succeed."""
    connector = EVMConnector(get_platform_settings())
    client = connector.client(chain)
    try:
        for call in calls:
            result = await client.transact(
                call.to, call.abi, call.fn_name, call.args, account=signer
            )
            if not result.ok:
                logger.error(
                    "aqua_action_failed",
                    function=call.fn_name,
                    to=call.to,
                    status=result.status.value,
                    error=result.error_message,
                )
                print(f"❌ {call.fn_name} → {result.status.value}: {result.error_message}")
                return False
            print(f"✅ {call.fn_name} → 0x{result.tx_hash.hex()}")
        return True
    finally:
        await connector.teardown()


# ── Entry point ──────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Aqua maker/taker actions")
    parser.add_argument("--chain", default=SEPOLIA)
    parser.add_argument("--app", default=XYC_SWAP, help="Aqua app (XYCSwap) address")
    parser.add_argument("--aqua", default=AQUA, help="Aqua contract address")
    parser.add_argument("--maker", help="Maker address (default: from MAKER_PRIVATE_KEY)")
    parser.add_argument("--fee-bps", type=int, default=0)
    parser.add_argument("--dry-run", action="store_true", help="Print calldata, send nothing")
    subparsers = parser.add_subparsers(dest="action", required=True)

    weth = partial(parse_units, decimals=WETH_DECIMALS)
    usdc = partial(parse_units, decimals=USDC_DECIMALS)

    ship = subparsers.add_parser("ship", help="Approve and ship WETH/USDC liquidity")
    ship.add_argument("--salt", help="32-byte hex salt (default: current timestamp)")
    ship.add_argument("--weth", type=weth, default=parse_units("0.02", WETH_DECIMALS))
    ship.add_argument("--usdc", type=usdc, default=parse_units("5", USDC_DECIMALS))

    dock = subparsers.add_parser("dock", help="Dock the strategy")
    dock.add_argument("--salt", required=True)

    pull = subparsers.add_parser("pull", help="Pull WETH from the strategy (taker)")
    pull.add_argument("--salt", required=True)
    pull.add_argument("--amount", type=weth, default=parse_units("0.02", WETH_DECIMALS))

    push = subparsers.add_parser("push", help="Approve and push WETH into the strategy (taker)")
    push.add_argument("--salt", required=True)
    push.add_argument("--amount", type=weth, default=parse_units("0.01", WETH_DECIMALS))
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()
    settings = get_platform_settings()
    setup_logging(level=settings.log_level_number, json_output=settings.log_json)

    try:
        maker_account = load_account(
            os.environ.get("MAKER_PRIVATE_KEY", ""), field="maker_private_key"
        )
        taker_account = load_account(
            os.environ.get("TAKER_PRIVATE_KEY", ""), field="taker_private_key"
        )
    except ChainPilotError as e:
        logger.error("signer_invalid", **e.to_dict())
        return 1

    signer = maker_account if args.action in MAKER_ACTIONS else taker_account
    if signer is None and not args.dry_run:
        env_key = "MAKER_PRIVATE_KEY" if args.action in MAKER_ACTIONS else "TAKER_PRIVATE_KEY"
        logger.error("signer_missing", action=args.action, hint=f"set {env_key}")
        return 1

    maker = args.maker or (maker_account.address if maker_account else None)
    if maker is None:
        logger.error("maker_missing", hint="pass --maker or set MAKER_PRIVATE_KEY")
        return 1

    if args.salt:
        try:
            salt = bytes.fromhex(args.salt.removeprefix("0x"))
        except ValueError:
            salt = b""
        if len(salt) != 32:
            logger.error("invalid_salt", salt=args.salt)
            return 1
    else:
        salt = timestamp_salt()

    strategy = Strategy(
        maker=to_checksum_address(maker),
        salt=salt,
        fee_bps=args.fee_bps,
        app=to_checksum_address(args.app),
        aqua=to_checksum_address(args.aqua),
    )
    print(f"Salt: 0x{salt.hex()}")
    print(f"Strategy hash: 0x{strategy.hash.hex()}")

    try:
        calls = build_plan(args, strategy)
        if args.dry_run:
            for call in calls:
                print(f"{call.fn_name} → {call.to}: 0x{call.calldata.hex()}")
            return 0
        ok = asyncio.run(execute(args.chain, calls, signer))
    except ChainPilotError as e:
        logger.error("aqua_action_failed", action=args.action, **e.to_dict())
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
