"""
Liquidation Watch — pipeline steps.

    fetch_prices        — one Hermes read per configured feed
    check_liquidatable  — Liquidator.isLiquidatable(user)
    decide_action       — pure: SET_POSITION or LIQUIDATE_COLLATERAL
    submit_action       — report + write to the matching proxy
    send_update         — best-effort Telegram summary
"""

from __future__ import annotations

from chainpilot.connectors.evm_connector import encode_parameters
from chainpilot.connectors.pyth_connector import format_pyth_price, latest_price_url
from chainpilot.contracts import LIQUIDATOR_ABI
from chainpilot.core import WorkflowContext, call_view, require_success, submit_write

from workflows.liquidation_watch.models import LiquidationAction

PRICE_UNAVAILABLE = "Price Unavailable"
POSITION_COLLATERAL = 100


async def fetch_prices(ctx: WorkflowContext) -> dict:
    """
    One summary line per feed, in config order:

        SHIB: $0.00001234
        PEPE: Price Unavailable

    Reads are sequential and the first failing read aborts the run.
    """
    cfg = ctx.config
    lines = []
    for feed in cfg.price_feeds:
        url = latest_price_url(cfg.price_url, [feed.id])
        ctx.logger.info("fetching_price", symbol=feed.symbol, url=url)
        response = await ctx.pyth.fetch_price_updates(url)

        if not response.parsed:
            lines.append(f"{feed.symbol}: {PRICE_UNAVAILABLE}")
            continue
        price = response.parsed[0].price
        lines.append(f"{feed.symbol}: ${format_pyth_price(price.price, price.expo)}")

    prices = "\n".join(lines) if lines else PRICE_UNAVAILABLE
    return {"prices": prices}


async def check_liquidatable(ctx: WorkflowContext) -> dict:
    """The watched user is the configured sender."""
    evm = ctx.config.evms[0]
    user = evm.sender_address
    liquidatable = await call_view(
        ctx, evm, evm.liquidator_address, LIQUIDATOR_ABI, "isLiquidatable", [user]
    )
    ctx.logger.info("liquidatable_status", user=user, liquidatable=liquidatable)
    return {"user": user, "liquidatable": bool(liquidatable)}


def decide_liquidation_action(liquidatable: bool) -> LiquidationAction:
    if liquidatable:
        return LiquidationAction.LIQUIDATE_COLLATERAL
    return LiquidationAction.SET_POSITION


def decide_action(liquidatable: bool) -> dict:
    return {"action": decide_liquidation_action(liquidatable)}


def encode_action(action: LiquidationAction, user: str) -> bytes:
    """Report payload the proxy for `action` decodes."""
    if action is LiquidationAction.SET_POSITION:
        return encode_parameters(["address", "bool", "uint256"], [user, True, POSITION_COLLATERAL])
    return encode_parameters(["address"], [user])


async def submit_action(ctx: WorkflowContext, action: LiquidationAction, user: str) -> dict:
    evm = ctx.config.evms[0]
    if action is LiquidationAction.SET_POSITION:
        receiver = evm.set_position_proxy_address
    else:
        receiver = evm.liquidate_collateral_proxy_address

    ctx.logger.info("submitting_action", action=action.value, receiver=receiver, user=user)
    result = await submit_write(ctx, evm, receiver, encode_action(action, user))
    tx_hash = require_success(result)
    return {"tx_hash": tx_hash, "result": tx_hash}


def build_update_message(prices: str, user: str, action: LiquidationAction, tx_hash: str) -> str:
    return (
        "🚀 *Liquidation Watch Update* 🚀\n\n"
        f"📊 *Prices:*\n{prices}\n\n"
        f"👤 *User:* `{user}`\n\n"
        f"🛠 *Action:* {action.description}\n\n"
        f"🔗 *Tx Hash:* {tx_hash}"
    )


async def send_update(
    ctx: WorkflowContext, prices: str, user: str, action: LiquidationAction, tx_hash: str
) -> None:
    await ctx.telegram.notify(build_update_message(prices, user, action, tx_hash), markdown=True)
