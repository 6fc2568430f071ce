"""
Liquidation Watch — price summary, liquidation check and one corrective
write per tick, reported to Telegram.
"""

from workflows.liquidation_watch.workflow import LiquidationWatchWorkflow

workflow = LiquidationWatchWorkflow()
