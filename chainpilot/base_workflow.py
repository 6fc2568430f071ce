"""
BaseWorkflow — Base class for all chain workflows.

Every workflow in the platform extends this class. It provides:
  - Auto-loading of manifest.yaml (name, triggers, documented settings)
  - Config loading/validation against the workflow's `config_schema`
  - A trigger → handler map the router dispatches through
  - `run()`: the single entry point, with timing, logging and a WorkflowRun

Usage:
    class PriceAlertWorkflow(BaseWorkflow):
        config_schema = PriceAlertConfig

        def handlers(self):
            return {TriggerType.CRON: on_cron}
"""

from __future__ import annotations

import inspect
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable
from uuid import uuid4

import structlog

from chainpilot.config import PlatformSettings, get_platform_settings
from chainpilot.config_loader import load_manifest, load_workflow_config
from chainpilot.connectors.registry import ConnectorRegistry, get_connector_registry
from chainpilot.core.context import WorkflowContext
from chainpilot.errors import ChainPilotError, ConfigurationError
from chainpilot.models import (
    CronPayload,
    EVMLog,
    RunStatus,
    TriggerType,
    WorkflowConfig,
    WorkflowManifest,
    WorkflowRun,
)

logger = structlog.get_logger(__name__)

Handler = Callable[[WorkflowContext, Any], Awaitable[Any]]


class BaseWorkflow:
    """
    Base class for all workflows.

    Subclasses MUST override:
      - handlers(): map each supported TriggerType to an async handler
        `handler(ctx, payload) -> output`

    Subclasses MAY override:
      - config_schema: WorkflowConfig subclass the config file must match
      - health_check()
    """

    config_schema: type[WorkflowConfig] = WorkflowConfig

    def __init__(self):
        self._manifest: WorkflowManifest | None = None
        # Resolve the workflow directory from the subclass file location
        self._workflow_dir: Path = Path(inspect.getfile(type(self))).parent

    # ── Manifest (Auto-loaded) ────────────────────────────────────────

    @property
    def manifest(self) -> WorkflowManifest:
        if self._manifest is None:
            self._manifest = load_manifest(self._workflow_dir)
        return self._manifest

    @property
    def name(self) -> str:
        return self.manifest.name

    # ── Configuration ─────────────────────────────────────────────────

    def load_config(self, path: str | Path) -> WorkflowConfig:
        """Load and validate this workflow's config file."""
        return load_workflow_config(path, self.config_schema)

    def watched_logs(self, config: WorkflowConfig) -> list[tuple[str, str]]:
        """
        (chain_selector_name, address) pairs this workflow's log triggers
        watch under `config`.
        """
        watched = []
        for trigger in self.manifest.triggers:
            if trigger.type != TriggerType.LOG or not trigger.address_field:
                continue
            address = _resolve_field(config, trigger.address_field)
            chain = _resolve_field(config, trigger.chain_field) if trigger.chain_field else ""
            watched.append((chain, address))
        return watched

    # ── Handlers ──────────────────────────────────────────────────────

    def handlers(self) -> dict[TriggerType, Handler]:
        raise NotImplementedError(
            f"Workflow '{self.manifest.name}' does not implement handlers()."
        )

    def supports(self, trigger_type: TriggerType) -> bool:
        return trigger_type in self.handlers()

    async def health_check(self) -> bool:
        return True

    # ── Execution Wrapper ─────────────────────────────────────────────

    @staticmethod
    def _coerce_payload(trigger_type: TriggerType, payload: Any) -> Any:
        if isinstance(payload, dict):
            if trigger_type == TriggerType.CRON:
                return CronPayload.model_validate(payload)
            if trigger_type == TriggerType.LOG:
                return EVMLog.model_validate(payload)
        return payload

    async def run(
        self,
        trigger_type: TriggerType,
        payload: Any,
        *,
        config: WorkflowConfig,
        connectors: ConnectorRegistry | None = None,
        settings: PlatformSettings | None = None,
    ) -> WorkflowRun:
        """
        Run the workflow once for one trigger delivery.

        This is THE single entry point for all executions. Failures are
        logged once here and returned as a FAILED WorkflowRun carrying the
        error message and code; nothing is retried.
        """
        run_id = f"run_{uuid4().hex[:12]}"
        run = WorkflowRun(
            id=run_id,
            workflow_id=self.manifest.name,
            status=RunStatus.RUNNING,
            trigger_type=trigger_type,
            started_at=datetime.now(timezone.utc),
        )

        logger.info(
            "workflow_run_started",
            workflow=self.manifest.name,
            run_id=run_id,
            trigger_type=trigger_type.value,
        )

        start = time.monotonic()
        try:
            handler = self.handlers().get(trigger_type)
            if handler is None:
                raise ConfigurationError(
                    f"Workflow '{self.manifest.name}' has no {trigger_type.value} handler",
                    field="trigger",
                )

            ctx = WorkflowContext(
                workflow_name=self.manifest.name,
                config=config,
                connectors=connectors if connectors is not None else get_connector_registry(),
                settings=settings or get_platform_settings(),
                execution_id=run_id,
                metadata={"trigger_type": trigger_type.value},
            )
            run.output = await handler(ctx, self._coerce_payload(trigger_type, payload))
            run.status = RunStatus.SUCCESS

        except Exception as e:
            run.status = RunStatus.FAILED
            run.error = str(e)
            run.error_code = e.error_code if isinstance(e, ChainPilotError) else type(e).__name__
            logger.error(
                "workflow_run_failed",
                workflow=self.manifest.name,
                run_id=run_id,
                error=str(e),
                error_code=run.error_code,
            )

        finally:
            run.duration_ms = round((time.monotonic() - start) * 1000, 2)
            run.completed_at = datetime.now(timezone.utc)

        logger.info(
            "workflow_run_completed",
            workflow=self.manifest.name,
            run_id=run_id,
            status=run.status.value,
            duration_ms=run.duration_ms,
        )
        return run

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} dir={self._workflow_dir.name!r}>"


def _resolve_field(config: Any, path: str) -> Any:
    """Follow a dotted path ("evms.0.chain_selector_name") through a config."""
    value = config
    for part in path.split("."):
        if isinstance(value, (list, tuple)):
            try:
                value = value[int(part)]
            except (ValueError, IndexError) as e:
                raise ConfigurationError(f"Config has no '{path}'", field=path) from e
        elif isinstance(value, dict):
            if part not in value:
                raise ConfigurationError(f"Config has no '{path}'", field=path)
            value = value[part]
        else:
            if not hasattr(value, part):
                raise ConfigurationError(f"Config has no '{path}'", field=path)
            value = getattr(value, part)
    return value
