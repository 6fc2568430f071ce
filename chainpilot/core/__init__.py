"""
Core — pipeline engine and chain helpers used by every workflow.
"""

from chainpilot.core.chain import (
    ZERO_HASH,
    address_from_topic,
    call_view,
    require_success,
    submit_write,
)
from chainpilot.core.context import WorkflowContext
from chainpilot.core.pipeline import Pipeline, PipelineBuilder, PipelineExecutionResult
from chainpilot.core.report import ReportSigner
from chainpilot.core.step import BaseStep, FunctionalStep, step
from chainpilot.core.triggers import require_scheduled_time, require_topics

__all__ = [
    "WorkflowContext",
    "Pipeline",
    "PipelineBuilder",
    "PipelineExecutionResult",
    "BaseStep",
    "FunctionalStep",
    "step",
    "ReportSigner",
    "ZERO_HASH",
    "address_from_topic",
    "call_view",
    "require_success",
    "submit_write",
    "require_scheduled_time",
    "require_topics",
]
