"""
WorkflowRouter — Routes trigger deliveries to workflows.

The router is the central dispatch point that:
  1. Receives triggers (cron tick, chain log, manual)
  2. Looks up the target workflow(s) in the registry
  3. Runs each matched workflow with its loaded config, one after another
"""

from __future__ import annotations

from typing import Any

import structlog

from chainpilot.config import PlatformSettings
from chainpilot.connectors.registry import ConnectorRegistry
from chainpilot.errors import ConfigurationError
from chainpilot.models import CronPayload, EVMLog, TriggerType, WorkflowConfig, WorkflowRun
from chainpilot.registry import WorkflowRegistry, get_registry

logger = structlog.get_logger(__name__)


class WorkflowRouter:
    """
    Routes triggers to workflows via the registry.

    Configs are loaded once at process start and handed to the router
    keyed by workflow ID.

    Usage:
        router = WorkflowRouter(registry, configs={"onchain_data": cfg})
        run = await router.route_cron("onchain_data", CronPayload(...))
        runs = await router.route_log(log)
    """

    def __init__(
        self,
        registry: WorkflowRegistry | None = None,
        *,
        configs: dict[str, WorkflowConfig] | None = None,
        connectors: ConnectorRegistry | None = None,
        settings: PlatformSettings | None = None,
    ):
        self._registry = registry or get_registry()
        self._configs: dict[str, WorkflowConfig] = dict(configs or {})
        self._connectors = connectors
        self._settings = settings

    def set_config(self, workflow_id: str, config: WorkflowConfig) -> None:
        self._configs[workflow_id] = config

    def _config_for(self, workflow_id: str) -> WorkflowConfig:
        if workflow_id not in self._configs:
            raise ConfigurationError(
                f"No config loaded for workflow '{workflow_id}'", field=workflow_id
            )
        return self._configs[workflow_id]

    async def _run(self, workflow, trigger_type: TriggerType, payload: Any) -> WorkflowRun:
        return await workflow.run(
            trigger_type,
            payload,
            config=self._config_for(workflow.manifest.name),
            connectors=self._connectors,
            settings=self._settings,
        )

    # ── Cron ──────────────────────────────────────────────────────────

    async def route_cron(self, workflow_id: str, payload: CronPayload | dict) -> WorkflowRun:
        """
        Deliver a cron tick to one workflow.

        Raises KeyError if the workflow is not registered.
        """
        workflow = self._registry.get_or_raise(workflow_id)
        logger.info("routing_cron", workflow=workflow_id)
        return await self._run(workflow, TriggerType.CRON, payload)

    # ── Chain Logs ────────────────────────────────────────────────────

    async def route_log(self, log: EVMLog) -> list[WorkflowRun]:
        """
        Deliver a log to every enabled workflow whose log trigger watches
        `log.address` on `log.chain_selector_name`. Runs are sequential,
        in registry order.
        """
        address = log.address.lower()
        matches = []
        for workflow in self._registry.find_by_trigger(TriggerType.LOG):
            config = self._configs.get(workflow.manifest.name)
            if config is None:
                continue
            for chain, watched in workflow.watched_logs(config):
                if watched.lower() != address:
                    continue
                if log.chain_selector_name is None or log.chain_selector_name == chain:
                    matches.append(workflow)
                    break

        if not matches:
            logger.info(
                "log_routing_no_matches", address=log.address, chain=log.chain_selector_name
            )
            return []

        results = []
        for workflow in matches:
            logger.info("routing_log", workflow=workflow.manifest.name, address=log.address)
            results.append(await self._run(workflow, TriggerType.LOG, log))
        return results

    # ── Manual Trigger ────────────────────────────────────────────────

    async def route_manual(self, workflow_id: str, payload: Any = None) -> WorkflowRun:
        """
        Manually trigger a workflow's MANUAL handler.

        Raises KeyError if workflow not found.
        """
        workflow = self._registry.get_or_raise(workflow_id)
        if not workflow.manifest.enabled:
            logger.warning("manual_trigger_disabled_workflow", name=workflow_id)

        logger.info("routing_manual", workflow=workflow_id)
        return await self._run(workflow, TriggerType.MANUAL, payload or {})


# ── Singleton ─────────────────────────────────────────────────────────

_router: WorkflowRouter | None = None


def get_router() -> WorkflowRouter:
    """Get or create the global WorkflowRouter singleton."""
    global _router
    if _router is None:
        _router = WorkflowRouter()
    return _router
