"""
WorkflowContext — Execution context for a single workflow run.

Every handler and pipeline step receives the same `WorkflowContext`:
  - execution_id: Unique ID for this run (log correlation)
  - config: The workflow's validated, immutable config
  - logger: structlog logger pre-bound with execution metadata
  - state: Accumulated pipeline state
  - capability accessors: http, pyth, telegram, evm(chain), report()

Contexts are cheap; one per trigger delivery. Nothing on them survives
the run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import structlog

from chainpilot.config import PlatformSettings, get_platform_settings
from chainpilot.connectors.registry import ConnectorRegistry
from chainpilot.core.report import ReportSigner
from chainpilot.models import Report


@dataclass
class WorkflowContext:
    """
    Context threaded through every step of a workflow run.

    Attributes:
        workflow_name: Registry ID of the running workflow.
        config: Validated workflow config (a WorkflowConfig subclass).
        connectors: Registry the capability accessors resolve against.
        settings: Process-wide platform settings.
        execution_id: Short UUID for this run.
        state: Mutable dict that accumulates step outputs.
        metadata: Trigger info (type, scheduled time, log address).
    """

    workflow_name: str
    config: Any
    connectors: ConnectorRegistry
    settings: PlatformSettings = field(default_factory=get_platform_settings)
    execution_id: str = field(default_factory=lambda: uuid4().hex[:16])
    state: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    _started_at: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        self.logger = structlog.get_logger("chainpilot.workflow").bind(
            execution_id=self.execution_id,
            workflow=self.workflow_name,
        )

    # ── State Management ─────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def update_state(self, updates: dict[str, Any]) -> None:
        """Merge updates into the pipeline state (shallow merge)."""
        self.state.update(updates)

    # ── Capabilities ─────────────────────────────────────────────────

    @property
    def http(self):
        """The AsyncHTTPClient of the `http` connector."""
        return self.connectors.get("http").client

    @property
    def pyth(self):
        return self.connectors.get("pyth").client

    @property
    def telegram(self):
        """The `telegram` connector itself (use `.notify(text)`)."""
        return self.connectors.get("telegram")

    def evm(self, chain_selector_name: str):
        """AsyncEVMClient for a chain selector name."""
        return self.connectors.get("evm").client(chain_selector_name)

    def report(self, encoded_payload: bytes) -> Report:
        """Sign `encoded_payload` as this workflow."""
        account = getattr(self.connectors.get("evm"), "account", None)
        return ReportSigner(self.workflow_name, account).sign(encoded_payload)

    # ── Timing ───────────────────────────────────────────────────────

    @property
    def elapsed_ms(self) -> float:
        return round((time.monotonic() - self._started_at) * 1000, 2)

    # ── Child Context ────────────────────────────────────────────────

    def for_step(self, step_name: str) -> WorkflowContext:
        """
        Child context for one pipeline step.

        Shares execution_id, config and state; only the logger gains a
        `step` binding.
        """
        child = WorkflowContext(
            workflow_name=self.workflow_name,
            config=self.config,
            connectors=self.connectors,
            settings=self.settings,
            execution_id=self.execution_id,
            state=self.state,
            metadata=self.metadata,
            _started_at=self._started_at,
        )
        child.logger = self.logger.bind(step=step_name)
        return child
