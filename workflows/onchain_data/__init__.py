"""
Onchain Data — counter increments or proof-of-reserve updates on a cron,
emitter messages on a log trigger.
"""

from workflows.onchain_data.workflow import OnchainDataWorkflow

workflow = OnchainDataWorkflow()
