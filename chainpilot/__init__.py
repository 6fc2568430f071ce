"""
ChainPilot — Scheduled and log-triggered on-chain automation workflows.

Provides the shared infrastructure for declaring, discovering, routing and
running chain workflows: connectors (HTTP, Pyth, Telegram, EVM), the
pipeline engine, and the report/write boundary.
"""

from chainpilot.base_workflow import BaseWorkflow
from chainpilot.connectors import ConnectorRegistry, get_connector_registry
from chainpilot.core import Pipeline, PipelineBuilder, WorkflowContext
from chainpilot.models import TriggerType, WorkflowConfig, WorkflowManifest, WorkflowRun
from chainpilot.registry import WorkflowRegistry, get_registry
from chainpilot.router import WorkflowRouter, get_router
from chainpilot.version import VERSION

__version__ = VERSION

__all__ = [
    "BaseWorkflow",
    "ConnectorRegistry",
    "get_connector_registry",
    "Pipeline",
    "PipelineBuilder",
    "WorkflowContext",
    "TriggerType",
    "WorkflowConfig",
    "WorkflowManifest",
    "WorkflowRun",
    "WorkflowRegistry",
    "get_registry",
    "WorkflowRouter",
    "get_router",
]
