"""
Onchain Data — pipeline steps.

Counter mode:
    read_counter → increment_counter

Proof-of-reserve mode:
    fetch_reserve_info → read_total_supply → scale_reserve
        → read_native_balance → update_reserves

Log trigger:
    read_last_message

Writes always go through the first configured chain.
"""

from __future__ import annotations

import math
from decimal import Decimal

from pydantic import ValidationError

from chainpilot.connectors.evm_connector import encode_function_data
from chainpilot.contracts import (
    BALANCE_READER_ABI,
    COUNTER_ABI,
    IERC20_ABI,
    MESSAGE_EMITTER_ABI,
    RESERVE_MANAGER_ABI,
)
from chainpilot.core import WorkflowContext, call_view, require_success, submit_write
from chainpilot.errors import ConfigurationError, DecodeError, RipcordError

from workflows.onchain_data.models import PORResponse

RESERVE_SCALE = 10**18


def format_reserve(total_reserve: float) -> str:
    """
    Reserve in the notation the PoR endpoint's own clients print.

    Follows JavaScript's Number#toString: 1500.0 -> "1500",
    1500.25 -> "1500.25", 0.000001 -> "0.000001", 1e-7 -> "1e-7",
    1e21 -> "1e+21".
    """
    if not isinstance(total_reserve, float):
        return str(total_reserve)
    if total_reserve == 0:
        return "0"
    if math.isnan(total_reserve):
        return "NaN"
    sign = "-" if total_reserve < 0 else ""
    if math.isinf(total_reserve):
        return sign + "Infinity"

    # repr gives the shortest digits that round-trip
    _, digits, exponent = Decimal(repr(abs(total_reserve))).normalize().as_tuple()
    s = "".join(str(d) for d in digits)
    k = len(s)
    n = exponent + k
    if k <= n <= 21:
        body = s + "0" * (n - k)
    elif 0 < n <= 21:
        body = s[:n] + "." + s[n:]
    elif -6 < n <= 0:
        body = "0." + "0" * -n + s
    else:
        e = n - 1
        mantissa = s if k == 1 else s[0] + "." + s[1:]
        body = f"{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"
    return sign + body


# ── Counter ──────────────────────────────────────────────────────────


def _counter_address(ctx: WorkflowContext) -> str:
    evm = ctx.config.evms[0]
    if not evm.counter_address:
        raise ConfigurationError(
            "Counter address is not defined in config", field="evms.0.counterAddress"
        )
    return evm.counter_address


async def read_counter(ctx: WorkflowContext) -> dict:
    evm = ctx.config.evms[0]
    value = await call_view(
        ctx, evm, _counter_address(ctx), COUNTER_ABI, "number", block="latest"
    )
    ctx.logger.info("counter_read", counter_value=value)
    return {"counter_value": value}


async def increment_counter(ctx: WorkflowContext) -> dict:
    evm = ctx.config.evms[0]
    receiver = evm.counter_proxy_address or _counter_address(ctx)

    ctx.logger.info("incrementing_counter", receiver=receiver)
    result = await submit_write(ctx, evm, receiver, encode_function_data(COUNTER_ABI, "increment"))
    tx_hash = require_success(result)
    return {"tx_hash": tx_hash, "result": tx_hash}


# ── Proof of Reserve ─────────────────────────────────────────────────


async def fetch_reserve_info(ctx: WorkflowContext, url: str) -> dict:
    """
    GET the proof-of-reserve endpoint.

    Raises:
        HTTPReadError: Status other than 200.
        DecodeError: Body is not a reserve response.
        RipcordError: The endpoint pulled the ripcord.
    """
    ctx.logger.info("fetching_reserve_info", url=url)
    response = await ctx.http.get(url)
    try:
        reserve = PORResponse.model_validate(response.json())
    except ValidationError as e:
        raise DecodeError("Unexpected proof-of-reserve response", detail=str(e)) from e

    if reserve.ripcord:
        raise RipcordError("ripcord is true")

    ctx.logger.info(
        "reserve_info_fetched",
        total_reserve=reserve.total_token,
        updated_at=reserve.updated_at.isoformat() if reserve.updated_at else None,
    )
    return {"total_reserve": reserve.total_token, "reserve_updated_at": reserve.updated_at}


async def read_total_supply(ctx: WorkflowContext) -> dict:
    """totalSupply() of the token, summed over every configured chain."""
    total_supply = 0
    for evm in ctx.config.evms:
        supply = await call_view(ctx, evm, evm.token_address, IERC20_ABI, "totalSupply")
        ctx.logger.debug("chain_total_supply", chain=evm.chain_selector_name, supply=supply)
        total_supply += supply
    ctx.logger.info("total_supply_read", total_supply=total_supply)
    return {"total_supply": total_supply}


def scale_reserve(total_reserve: float) -> dict:
    scaled = int(Decimal(str(total_reserve)) * RESERVE_SCALE)
    return {"total_reserve_scaled": scaled}


async def read_native_balance(ctx: WorkflowContext) -> dict:
    evm = ctx.config.evms[0]
    balances = await call_view(
        ctx,
        evm,
        evm.balance_reader_address,
        BALANCE_READER_ABI,
        "getNativeBalances",
        [[evm.token_address]],
    )
    if not balances:
        raise DecodeError("No balances returned from contract")
    ctx.logger.info("native_balance_read", native_balance=balances[0])
    return {"native_balance": balances[0]}


async def update_reserves(
    ctx: WorkflowContext, total_supply: int, total_reserve_scaled: int, total_reserve: float
) -> dict:
    evm = ctx.config.evms[0]
    ctx.logger.info(
        "updating_reserves",
        total_supply=total_supply,
        total_reserve_scaled=total_reserve_scaled,
    )
    payload = encode_function_data(
        RESERVE_MANAGER_ABI, "updateReserves", [(total_supply, total_reserve_scaled)]
    )
    tx_hash = require_success(await submit_write(ctx, evm, evm.proxy_address, payload))
    return {"tx_hash": tx_hash, "result": format_reserve(total_reserve)}


# ── Messages ─────────────────────────────────────────────────────────


async def read_last_message(ctx: WorkflowContext, emitter: str) -> dict:
    evm = ctx.config.evms[0]
    message = await call_view(
        ctx,
        evm,
        evm.message_emitter_address,
        MESSAGE_EMITTER_ABI,
        "getLastMessage",
        [emitter],
    )
    ctx.logger.info("message_read", emitter=emitter, message=message)
    return {"message": message, "result": message}
