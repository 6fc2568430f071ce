"""
Onchain Data — workflow anchor.

Identity & Triggers: loaded from manifest.yaml
Cron: counter increment or proof-of-reserve update, chosen by `mode`
Log:  decode the emitter from topics[1] and read its last message
"""

from chainpilot.base_workflow import BaseWorkflow
from chainpilot.core import (
    PipelineBuilder,
    WorkflowContext,
    address_from_topic,
    require_scheduled_time,
    require_topics,
)
from chainpilot.models import CronPayload, EVMLog, TriggerType

from workflows.onchain_data.models import CronMode, OnchainDataConfig
from workflows.onchain_data.steps import (
    fetch_reserve_info,
    increment_counter,
    read_counter,
    read_last_message,
    read_native_balance,
    read_total_supply,
    scale_reserve,
    update_reserves,
)


def build_cron_pipeline(mode: CronMode):
    if mode == CronMode.POR:
        return (
            PipelineBuilder("onchain_data_por")
            .step(fetch_reserve_info)
            .step(read_total_supply)
            .step(scale_reserve)
            .step(read_native_balance)
            .step(update_reserves)
            .build()
        )
    return PipelineBuilder("onchain_data_counter").step(read_counter).step(increment_counter).build()


async def on_cron(ctx: WorkflowContext, payload: CronPayload) -> str:
    """Returns the tx hash (counter) or the reserve string (por)."""
    require_scheduled_time(payload)
    ctx.logger.info("onchain_data_tick", mode=ctx.config.mode.value)

    pipeline = build_cron_pipeline(ctx.config.mode)
    result = await pipeline.execute(ctx, initial_input={"url": ctx.config.url})
    return result.output


async def on_log(ctx: WorkflowContext, payload: EVMLog) -> str:
    """Returns the emitter's last message."""
    topics = require_topics(payload)
    emitter = address_from_topic(topics[1])
    ctx.logger.info("message_emitted", emitter=emitter, address=payload.address)

    pipeline = PipelineBuilder("onchain_data_log").step(read_last_message).build()
    result = await pipeline.execute(ctx, initial_input={"emitter": emitter})
    return result.output


class OnchainDataWorkflow(BaseWorkflow):
    config_schema = OnchainDataConfig

    def handlers(self):
        return {
            TriggerType.CRON: on_cron,
            TriggerType.LOG: on_log,
        }
