"""
Tests for the Price Alert workflow.

Covers:
- Config validation
- Cron handler: trigger validation, price read, best-effort alert
- Failure paths: non-200 feed, missing parsed entries
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from chainpilot.errors import NotificationError
from chainpilot.models import CronPayload, RunStatus, TriggerType
from workflows.price_alert.models import PriceAlertConfig
from workflows.price_alert.steps import build_alert_message
from workflows.price_alert.workflow import PriceAlertWorkflow

FEED_ID = "0xf0d57deca57b3da2fe63a493f4c25925fdfd8edf834b20f93e1f84dbd1504d4a"
URL = f"https://hermes.pyth.network/v2/updates/price/latest?ids%5B%5D={FEED_ID}"
TICK = CronPayload(scheduled_execution_time=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def config():
    return PriceAlertConfig.model_validate({"schedule": "*/30 * * * * *", "url": URL})


@pytest.fixture
def workflow():
    return PriceAlertWorkflow()


async def _run(workflow, payload, config, connectors, settings):
    return await workflow.run(
        TriggerType.CRON, payload, config=config, connectors=connectors, settings=settings
    )


# ── Config ───────────────────────────────────────────────────────────


class TestConfig:
    def test_valid(self, config):
        assert config.url == URL

    def test_missing_url_rejected(self):
        with pytest.raises(ValidationError):
            PriceAlertConfig.model_validate({"schedule": "*/30 * * * * *"})

    def test_bad_schedule_rejected(self):
        with pytest.raises(ValidationError):
            PriceAlertConfig.model_validate({"schedule": "every minute", "url": URL})

    def test_config_is_immutable(self, config):
        with pytest.raises(ValidationError):
            config.url = "https://other"


# ── Manifest ─────────────────────────────────────────────────────────


def test_manifest_declares_cron(workflow):
    assert workflow.name == "price_alert"
    assert [t.type for t in workflow.manifest.triggers] == [TriggerType.CRON]
    assert workflow.supports(TriggerType.CRON)
    assert not workflow.supports(TriggerType.LOG)


# ── Cron Handler ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_returns_raw_price_and_sends_alert(
    workflow, config, connectors, settings, http, telegram, pyth_body
):
    http.add_json("hermes.pyth.network", pyth_body((FEED_ID[2:], "1234", -8)))

    run = await _run(workflow, TICK, config, connectors, settings)

    assert run.status == RunStatus.SUCCESS
    assert run.output == "1234"
    assert http.requested_urls == [URL]
    telegram.notify.assert_awaited_once_with("Hello from bot! Price is 1234")


@pytest.mark.asyncio
async def test_missing_scheduled_time_fails_before_any_call(
    workflow, config, connectors, settings, http, telegram
):
    run = await _run(workflow, CronPayload(), config, connectors, settings)

    assert run.status == RunStatus.FAILED
    assert run.error == "Scheduled execution time is required"
    assert run.error_code == "TRIGGER_INVALID"
    http.client.send_request.assert_not_awaited()
    telegram.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_non_200_feed_aborts_run(workflow, config, connectors, settings, http, telegram):
    http.add_status("hermes.pyth.network", 503)

    run = await _run(workflow, TICK, config, connectors, settings)

    assert run.status == RunStatus.FAILED
    assert run.error == "HTTP request failed with status: 503"
    telegram.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_empty_parsed_yields_zero(workflow, config, connectors, settings, http, pyth_body):
    http.add_json("hermes.pyth.network", pyth_body())

    run = await _run(workflow, TICK, config, connectors, settings)

    assert run.status == RunStatus.SUCCESS
    assert run.output == "0"


@pytest.mark.asyncio
async def test_alert_failure_does_not_change_output(
    workflow, config, connectors, settings, http, telegram, pyth_body
):
    http.add_json("hermes.pyth.network", pyth_body((FEED_ID[2:], "987654321", -8)))
    telegram.notify.side_effect = NotificationError("Telegram API error: Forbidden")

    run = await _run(workflow, TICK, config, connectors, settings)

    assert run.status == RunStatus.SUCCESS
    assert run.output == "987654321"


@pytest.mark.asyncio
async def test_dict_payload_is_coerced(workflow, config, connectors, settings, http, pyth_body):
    http.add_json("hermes.pyth.network", pyth_body((FEED_ID[2:], "5", -8)))

    run = await _run(
        workflow,
        {"scheduled_execution_time": "2026-10-19T12:00:00Z"},
        config,
        connectors,
        settings,
    )

    assert run.status == RunStatus.SUCCESS
    assert run.output == "5"


def test_alert_message():
    assert build_alert_message("42") == "Hello from bot! Price is 42"
