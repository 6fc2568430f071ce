"""
Price Alert — workflow anchor.

Identity & Triggers: loaded from manifest.yaml
Cron pipeline: fetch_price → send_price_alert (best-effort)
"""

from chainpilot.base_workflow import BaseWorkflow
from chainpilot.core import PipelineBuilder, WorkflowContext, require_scheduled_time
from chainpilot.models import CronPayload, TriggerType

from workflows.price_alert.models import PriceAlertConfig
from workflows.price_alert.steps import fetch_price, send_price_alert


async def on_cron(ctx: WorkflowContext, payload: CronPayload) -> str:
    """Returns the raw price string."""
    scheduled = require_scheduled_time(payload)
    ctx.logger.info("price_alert_tick", scheduled_execution_time=scheduled.isoformat())

    pipeline = (
        PipelineBuilder("price_alert")
        .step(fetch_price)
        .notify(send_price_alert)
        .build()
    )
    result = await pipeline.execute(ctx, initial_input={"url": ctx.config.url})
    return result.output


class PriceAlertWorkflow(BaseWorkflow):
    config_schema = PriceAlertConfig

    def handlers(self):
        return {TriggerType.CRON: on_cron}
