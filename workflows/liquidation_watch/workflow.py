"""
Liquidation Watch — workflow anchor.

Identity & Triggers: loaded from manifest.yaml
Cron pipeline:
    fetch_prices → check_liquidatable → decide_action → submit_action
        → send_update (best-effort)
"""

from chainpilot.base_workflow import BaseWorkflow
from chainpilot.core import PipelineBuilder, WorkflowContext, require_scheduled_time
from chainpilot.models import CronPayload, TriggerType

from workflows.liquidation_watch.models import LiquidationWatchConfig
from workflows.liquidation_watch.steps import (
    check_liquidatable,
    decide_action,
    fetch_prices,
    send_update,
    submit_action,
)


async def on_cron(ctx: WorkflowContext, payload: CronPayload) -> str:
    """Returns the tx hash of the write."""
    require_scheduled_time(payload)
    ctx.logger.info("liquidation_watch_tick")

    pipeline = (
        PipelineBuilder("liquidation_watch")
        .step(fetch_prices)
        .step(check_liquidatable)
        .step(decide_action)
        .step(submit_action)
        .notify(send_update)
        .build()
    )
    result = await pipeline.execute(ctx)
    return result.output


class LiquidationWatchWorkflow(BaseWorkflow):
    config_schema = LiquidationWatchConfig

    def handlers(self):
        return {TriggerType.CRON: on_cron}
