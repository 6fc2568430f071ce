"""
Price Alert — pipeline steps.

    fetch_price      — GET the Hermes URL, take the first parsed price
    send_price_alert — best-effort Telegram message
"""

from chainpilot.core import WorkflowContext

NO_PRICE = "0"


async def fetch_price(ctx: WorkflowContext, url: str) -> dict:
    """Raw integer price string of the first feed in the response, "0" if none."""
    ctx.logger.info("fetching_price", url=url)
    response = await ctx.pyth.fetch_price_updates(url)

    if not response.parsed:
        ctx.logger.warning("price_missing", url=url)
        return {"price": NO_PRICE, "result": NO_PRICE}

    price = response.parsed[0].price
    ctx.logger.info("price_fetched", price=price.price, conf=price.conf, expo=price.expo)
    return {"price": price.price, "result": price.price}


def build_alert_message(price: str) -> str:
    return f"Hello from bot! Price is {price}"


async def send_price_alert(ctx: WorkflowContext, price: str) -> None:
    await ctx.telegram.notify(build_alert_message(price))
