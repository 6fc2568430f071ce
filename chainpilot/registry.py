"""
WorkflowRegistry — Discovers and holds all workflows.

The registry scans the `workflows/` directory for Python packages and
supports two discovery modes (fallback chain):
  a. Classic:    __init__.py exports a `workflow` BaseWorkflow instance
  b. Auto-class: workflow.py contains a BaseWorkflow subclass → instantiate

Discovery convention:
  workflows/
    liquidation_watch/
      __init__.py           # optional `workflow = LiquidationWatchWorkflow()`
      manifest.yaml         # name, triggers, documented settings
      workflow.py           # BaseWorkflow subclass + handlers
      steps.py              # pipeline steps
      config.example.json   # sample config
"""

from __future__ import annotations

import importlib
import inspect
from pathlib import Path

import structlog

from chainpilot.base_workflow import BaseWorkflow
from chainpilot.models import TriggerType, WorkflowInfo

logger = structlog.get_logger(__name__)


class WorkflowRegistry:
    """
    Discovers and manages all registered workflows.

    Usage:
        registry = WorkflowRegistry()
        registry.discover()

        workflow = registry.get("liquidation_watch")
    """

    def __init__(self, workflows_dir: str = "workflows"):
        self._workflows: dict[str, BaseWorkflow] = {}
        self._workflows_dir = Path(workflows_dir)

    # ── Discovery ─────────────────────────────────────────────────────

    def discover(self) -> list[str]:
        """
        Scan the workflows directory and register all valid workflows.

        Directories starting with _ or . are skipped. A workflow that
        fails to import is logged and skipped; the others still load.
        """
        discovered = []

        if not self._workflows_dir.exists():
            logger.warning("workflows_dir_not_found", path=str(self._workflows_dir))
            return discovered

        for item in sorted(self._workflows_dir.iterdir()):
            if not item.is_dir():
                continue
            if item.name.startswith("_") or item.name.startswith("."):
                continue

            try:
                self._load_workflow(item.name)
                discovered.append(item.name)
            except Exception as e:
                logger.error(
                    "workflow_discovery_failed",
                    workflow=item.name,
                    error=str(e),
                )

        logger.info(
            "workflows_discovered",
            count=len(discovered),
            workflows=discovered,
        )
        return discovered

    def _load_workflow(self, name: str) -> None:
        pkg_dir = self._workflows_dir / name

        if self._try_classic_load(name, pkg_dir):
            return
        if self._try_auto_class_load(name, pkg_dir):
            return

        raise ImportError(
            f"No valid workflow found in {pkg_dir}. "
            f"Expected __init__.py with a `workflow` export, "
            f"or workflow.py with a BaseWorkflow subclass."
        )

    def _try_classic_load(self, name: str, pkg_dir: Path) -> bool:
        """Priority 1: __init__.py with a `workflow` attribute."""
        if not (pkg_dir / "__init__.py").exists():
            return False

        module = importlib.import_module(f"workflows.{name}")
        if not hasattr(module, "workflow"):
            return False

        workflow = module.workflow
        if not isinstance(workflow, BaseWorkflow):
            raise TypeError(
                f"workflows.{name}.workflow must be an instance of BaseWorkflow, "
                f"got {type(workflow).__name__}"
            )
        self._register_workflow(workflow)
        logger.debug("workflow_loaded_classic", name=name)
        return True

    def _try_auto_class_load(self, name: str, pkg_dir: Path) -> bool:
        """Priority 2: workflow.py contains a BaseWorkflow subclass."""
        if not (pkg_dir / "workflow.py").exists():
            return False

        module = importlib.import_module(f"workflows.{name}.workflow")
        for attr_name, obj in inspect.getmembers(module, inspect.isclass):
            if (
                issubclass(obj, BaseWorkflow)
                and obj is not BaseWorkflow
                and obj.__module__ == module.__name__
            ):
                self._register_workflow(obj())
                logger.debug("workflow_loaded_auto_class", name=name, cls=attr_name)
                return True
        return False

    def _register_workflow(self, workflow: BaseWorkflow) -> None:
        self._workflows[workflow.manifest.name] = workflow
        logger.debug(
            "workflow_registered",
            name=workflow.manifest.name,
            version=workflow.manifest.version,
            triggers=[t.type.value for t in workflow.manifest.triggers],
        )

    def register(self, workflow: BaseWorkflow) -> None:
        """Manually register a workflow instance."""
        self._register_workflow(workflow)

    # ── Lookup ────────────────────────────────────────────────────────

    def get(self, workflow_id: str) -> BaseWorkflow | None:
        return self._workflows.get(workflow_id)

    def get_or_raise(self, workflow_id: str) -> BaseWorkflow:
        """Get a workflow by ID or raise KeyError."""
        wf = self._workflows.get(workflow_id)
        if wf is None:
            raise KeyError(f"Workflow '{workflow_id}' not found in registry.")
        return wf

    def list_all(self) -> list[WorkflowInfo]:
        return [
            WorkflowInfo(
                name=wf.manifest.name,
                display_name=wf.manifest.display_name,
                description=wf.manifest.description,
                version=wf.manifest.version,
                icon=wf.manifest.icon,
                enabled=wf.manifest.enabled,
                triggers=wf.manifest.triggers,
                tags=wf.manifest.tags,
            )
            for wf in self._workflows.values()
        ]

    def get_all_workflows(self) -> list[BaseWorkflow]:
        return list(self._workflows.values())

    def list_names(self) -> list[str]:
        return list(self._workflows.keys())

    @property
    def count(self) -> int:
        return len(self._workflows)

    # ── Trigger Matching ──────────────────────────────────────────────

    def find_by_trigger(self, trigger_type: TriggerType) -> list[BaseWorkflow]:
        """All enabled workflows declaring a trigger of `trigger_type`."""
        return [
            wf
            for wf in self._workflows.values()
            if wf.manifest.enabled and any(t.type == trigger_type for t in wf.manifest.triggers)
        ]


# ── Singleton ─────────────────────────────────────────────────────────

_registry: WorkflowRegistry | None = None


def get_registry(workflows_dir: str = "workflows") -> WorkflowRegistry:
    """Get or create the global WorkflowRegistry singleton."""
    global _registry
    if _registry is None:
        _registry = WorkflowRegistry(workflows_dir)
    return _registry
