"""
Tests for the Liquidation Watch workflow.

Covers:
- Config validation and default price feeds
- Price summary formatting and fail-fast reads
- Decision determinism (setPosition iff not liquidatable)
- Write payloads and receivers per action
- Best-effort Telegram update
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from chainpilot.connectors.evm_connector import encode_parameters
from chainpilot.contracts import LIQUIDATOR_ABI
from chainpilot.errors import NotificationError
from chainpilot.models import CronPayload, RunStatus, TriggerType, TxStatus, WriteResult
from workflows.liquidation_watch.models import (
    DEFAULT_PRICE_FEEDS,
    LiquidationAction,
    LiquidationWatchConfig,
)
from workflows.liquidation_watch.steps import (
    build_update_message,
    decide_action,
    decide_liquidation_action,
    encode_action,
)
from workflows.liquidation_watch.workflow import LiquidationWatchWorkflow

SEPOLIA = "ethereum-testnet-sepolia"
LIQUIDATOR = "0x" + "a1" * 20
SET_POSITION_PROXY = "0x" + "b2" * 20
LIQUIDATE_PROXY = "0x" + "c3" * 20
SENDER = "0x" + "d4" * 20

SHIB, PEPE, DEGEN = (feed.id for feed in DEFAULT_PRICE_FEEDS)

TICK = CronPayload(scheduled_execution_time=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))
TX_HASH_HEX = "0x" + "ab" * 32


def _config(**overrides):
    data = {
        "schedule": "0 */5 * * * *",
        "priceUrl": "https://hermes.pyth.network",
        "evms": [
            {
                "liquidatorAddress": LIQUIDATOR,
                "setPositionProxyAddress": SET_POSITION_PROXY,
                "liquidateCollateralProxyAddress": LIQUIDATE_PROXY,
                "chainSelectorName": SEPOLIA,
                "gasLimit": "500000",
                "senderAddress": SENDER,
            }
        ],
    }
    data.update(overrides)
    return LiquidationWatchConfig.model_validate(data)


@pytest.fixture
def workflow():
    return LiquidationWatchWorkflow()


@pytest.fixture
def chain(evm):
    return evm.client(SEPOLIA)


@pytest.fixture
def prices(http, pyth_body):
    """SHIB and PEPE priced, DEGEN with no parsed entry."""
    http.add_json(SHIB, pyth_body((SHIB[2:], "1234", -8)))
    http.add_json(PEPE, pyth_body((PEPE[2:], "987654321", -13)))
    http.add_json(DEGEN, pyth_body())
    return "SHIB: $0.00001234\nPEPE: $0.000098765432\nDEGEN: Price Unavailable"


async def _run(workflow, config, connectors, settings, payload=TICK):
    return await workflow.run(
        TriggerType.CRON, payload, config=config, connectors=connectors, settings=settings
    )


# ── Config ───────────────────────────────────────────────────────────


class TestConfig:
    def test_default_feeds(self):
        assert [f.symbol for f in _config().price_feeds] == ["SHIB", "PEPE", "DEGEN"]

    def test_custom_feeds(self):
        config = _config(priceFeeds=[{"symbol": "ETH", "id": "0x" + "ff" * 32}])
        assert [f.symbol for f in config.price_feeds] == ["ETH"]

    def test_legacy_url_accepted(self):
        assert _config(url="https://unused.example.com").url == "https://unused.example.com"

    def test_missing_proxy_rejected(self):
        data = _config().model_dump(by_alias=True)
        del data["evms"][0]["liquidateCollateralProxyAddress"]
        with pytest.raises(ValidationError):
            LiquidationWatchConfig.model_validate(data)


# ── Decision ─────────────────────────────────────────────────────────


class TestDecision:
    def test_not_liquidatable_sets_position(self):
        assert decide_liquidation_action(False) is LiquidationAction.SET_POSITION

    def test_liquidatable_liquidates(self):
        assert decide_liquidation_action(True) is LiquidationAction.LIQUIDATE_COLLATERAL

    def test_deterministic(self):
        for liquidatable in (True, False):
            decisions = {decide_liquidation_action(liquidatable) for _ in range(5)}
            assert len(decisions) == 1

    def test_step_output(self):
        assert decide_action(False) == {"action": LiquidationAction.SET_POSITION}

    def test_action_payloads(self):
        assert encode_action(LiquidationAction.SET_POSITION, SENDER) == encode_parameters(
            ["address", "bool", "uint256"], [SENDER, True, 100]
        )
        assert encode_action(LiquidationAction.LIQUIDATE_COLLATERAL, SENDER) == encode_parameters(
            ["address"], [SENDER]
        )


# ── Cron Handler ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_not_liquidatable_sets_position(
    workflow, connectors, settings, chain, telegram, prices
):
    chain.stub_read(LIQUIDATOR, LIQUIDATOR_ABI, "isLiquidatable", False)

    run = await _run(workflow, _config(), connectors, settings)

    assert run.status == RunStatus.SUCCESS
    assert run.output == TX_HASH_HEX
    assert len(bytes.fromhex(run.output[2:])) == 32

    assert chain.write_report.await_count == 1
    receiver, report = chain.write_report.await_args.args
    assert receiver == SET_POSITION_PROXY
    assert report.raw_report == encode_parameters(
        ["address", "bool", "uint256"], [SENDER, True, 100]
    )
    assert chain.write_report.await_args.kwargs["gas_limit"] == 500_000

    telegram.notify.assert_awaited_once_with(
        build_update_message(prices, SENDER, LiquidationAction.SET_POSITION, TX_HASH_HEX),
        markdown=True,
    )


@pytest.mark.asyncio
async def test_liquidatable_liquidates_collateral(
    workflow, connectors, settings, chain, telegram, prices
):
    chain.stub_read(LIQUIDATOR, LIQUIDATOR_ABI, "isLiquidatable", True)

    run = await _run(workflow, _config(), connectors, settings)

    assert run.status == RunStatus.SUCCESS
    assert chain.write_report.await_count == 1
    receiver, report = chain.write_report.await_args.args
    assert receiver == LIQUIDATE_PROXY
    assert report.raw_report == encode_parameters(["address"], [SENDER])

    message = telegram.notify.await_args.args[0]
    assert "🛠 *Action:* Liquidating Collateral" in message


@pytest.mark.asyncio
async def test_price_summary_in_update(workflow, connectors, settings, chain, telegram, prices):
    chain.stub_read(LIQUIDATOR, LIQUIDATOR_ABI, "isLiquidatable", False)

    await _run(workflow, _config(), connectors, settings)

    message = telegram.notify.await_args.args[0]
    assert message.startswith("🚀 *Liquidation Watch Update* 🚀")
    assert "📊 *Prices:*\nSHIB: $0.00001234\nPEPE: $0.000098765432\nDEGEN: Price Unavailable" in message
    assert f"👤 *User:* `{SENDER}`" in message
    assert f"🔗 *Tx Hash:* {TX_HASH_HEX}" in message


@pytest.mark.asyncio
async def test_notification_failure_keeps_tx_hash(
    workflow, connectors, settings, chain, telegram, prices
):
    chain.stub_read(LIQUIDATOR, LIQUIDATOR_ABI, "isLiquidatable", False)
    telegram.notify.side_effect = NotificationError("Telegram API error: chat not found")

    run = await _run(workflow, _config(), connectors, settings)

    assert run.status == RunStatus.SUCCESS
    assert run.output == TX_HASH_HEX


@pytest.mark.asyncio
async def test_price_read_failure_aborts_before_chain(
    workflow, connectors, settings, http, chain, telegram, pyth_body
):
    http.add_json(SHIB, pyth_body((SHIB[2:], "1234", -8)))
    http.add_status(PEPE, 502)
    chain.stub_read(LIQUIDATOR, LIQUIDATOR_ABI, "isLiquidatable", False)

    run = await _run(workflow, _config(), connectors, settings)

    assert run.status == RunStatus.FAILED
    assert run.error == "HTTP request failed with status: 502"
    assert len(http.requested_urls) == 2
    chain.call_contract.assert_not_awaited()
    chain.write_report.assert_not_awaited()
    telegram.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_scheduled_time_fails_before_any_call(
    workflow, connectors, settings, http, chain
):
    run = await _run(workflow, _config(), connectors, settings, payload=CronPayload())

    assert run.status == RunStatus.FAILED
    assert run.error == "Scheduled execution time is required"
    http.client.send_request.assert_not_awaited()
    chain.call_contract.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_write_fails_run_without_notification(
    workflow, connectors, settings, chain, telegram, prices
):
    chain.stub_read(LIQUIDATOR, LIQUIDATOR_ABI, "isLiquidatable", False)
    chain.write_report.return_value = WriteResult(
        status=TxStatus.FATAL, error_message="insufficient funds for gas"
    )

    run = await _run(workflow, _config(), connectors, settings)

    assert run.status == RunStatus.FAILED
    assert run.error == "Failed to write report: insufficient funds for gas"
    telegram.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_feed_urls_follow_config_order(workflow, connectors, settings, http, chain, prices):
    chain.stub_read(LIQUIDATOR, LIQUIDATOR_ABI, "isLiquidatable", False)

    await _run(workflow, _config(), connectors, settings)

    urls = http.requested_urls
    assert [u.split("=")[-1] for u in urls] == [SHIB, PEPE, DEGEN]
    assert all(u.startswith("https://hermes.pyth.network/v2/updates/price/latest?") for u in urls)
