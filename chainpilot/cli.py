#!/usr/bin/env python3
"""
ChainPilot CLI — Run and manage chain workflows.

Usage:
    python -m chainpilot.cli list
    python -m chainpilot.cli run-cron <workflow> --config PATH [--scheduled-time ISO]
    python -m chainpilot.cli run-log <workflow> --config PATH --address ADDR \\
        --topic HEX [--topic HEX ...] [--data HEX] [--chain NAME]
    python -m chainpilot.cli poll-logs <workflow> --config PATH --from-block N [--to-block N]
    python -m chainpilot.cli run-manual <workflow> --config PATH [--payload JSON]
    python -m chainpilot.cli create-workflow <name> [--trigger cron|log|manual]

Exit code is 0 when every run succeeded and 1 otherwise.
"""

import argparse
import asyncio
import json
import re
import sys
from datetime import datetime, timezone
from pathlib import Path

import structlog

from chainpilot.config import get_platform_settings
from chainpilot.connectors.registry import get_connector_registry, reset_connector_registry
from chainpilot.errors import ChainPilotError
from chainpilot.logging import setup_logging
from chainpilot.models import CronPayload, EVMLog, RunStatus, TriggerType, WorkflowRun
from chainpilot.observability import setup_tracing, shutdown_tracing
from chainpilot.registry import WorkflowRegistry
from chainpilot.router import WorkflowRouter

logger = structlog.get_logger(__name__)

BASE_DIR = Path(__file__).parent.parent
WORKFLOWS_DIR = BASE_DIR / "workflows"


def to_pascal_case(snake_str: str) -> str:
    return "".join(word.capitalize() for word in snake_str.split("_"))


# ── Running workflows ────────────────────────────────────────────────


def _print_run(run: WorkflowRun) -> None:
    if run.status == RunStatus.SUCCESS:
        print(f"✅ {run.workflow_id} [{run.trigger_type.value}] → {run.output}")
    else:
        print(f"❌ {run.workflow_id} [{run.trigger_type.value}] {run.error_code}: {run.error}")


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def _run(args: argparse.Namespace, registry: WorkflowRegistry) -> int:
    settings = get_platform_settings()
    workflow = registry.get_or_raise(args.workflow)
    config = workflow.load_config(args.config)
    connectors = get_connector_registry(settings)
    router = WorkflowRouter(
        registry,
        configs={workflow.name: config},
        connectors=connectors,
        settings=settings,
    )

    await connectors.setup_all()
    try:
        if args.command == "run-cron":
            scheduled = (
                _parse_time(args.scheduled_time)
                if args.scheduled_time
                else datetime.now(timezone.utc)
            )
            runs = [
                await router.route_cron(
                    workflow.name, CronPayload(scheduled_execution_time=scheduled)
                )
            ]
        elif args.command == "run-log":
            log = EVMLog(
                address=args.address,
                topics=args.topic or [],
                data=args.data or "",
                chain_selector_name=args.chain,
            )
            runs = [
                await workflow.run(
                    TriggerType.LOG, log, config=config, connectors=connectors, settings=settings
                )
            ]
        elif args.command == "run-manual":
            runs = [await router.route_manual(workflow.name, args.payload)]
        else:
            runs = await _poll_logs(args, workflow, config, router, connectors)
    finally:
        await connectors.teardown_all()
        reset_connector_registry()

    for run in runs:
        _print_run(run)
    return 0 if all(r.status == RunStatus.SUCCESS for r in runs) else 1


async def _poll_logs(args, workflow, config, router, connectors) -> list[WorkflowRun]:
    """Fetch the watched contracts' logs over a block range and route each one."""
    runs: list[WorkflowRun] = []
    for chain, address in workflow.watched_logs(config):
        client = connectors.get("evm").client(chain)
        to_block = args.to_block if args.to_block is not None else "latest"
        logs = await client.get_logs([address], args.from_block, to_block)
        logger.info("logs_fetched", chain=chain, address=address, count=len(logs))
        for raw in logs:
            log = EVMLog(
                address=raw["address"],
                topics=list(raw.get("topics", [])),
                data=raw.get("data", b""),
                tx_hash=raw.get("transactionHash"),
                block_number=raw.get("blockNumber"),
                chain_selector_name=chain,
            )
            runs.extend(await router.route_log(log))
    return runs


def list_workflows(registry: WorkflowRegistry) -> int:
    infos = registry.list_all()
    if not infos:
        print("No workflows found.")
        return 0
    for info in infos:
        triggers = ", ".join(t.type.value for t in info.triggers)
        state = "" if info.enabled else " (disabled)"
        print(f"{info.icon} {info.name} v{info.version}{state}  [{triggers}]")
        if info.description:
            print(f"    {info.description}")
    return 0


# ── Scaffolding ──────────────────────────────────────────────────────

_TRIGGER_YAML = {
    "cron": '  - type: cron\n    schedule_field: schedule\n    description: "Runs on the configured schedule"',
    "log": (
        "  - type: log\n    address_field: evms.0.watched_address\n"
        '    chain_field: evms.0.chain_selector_name\n    description: "Runs on each watched log"'
    ),
    "manual": '  - type: manual\n    description: "Manual trigger"',
}


def create_workflow(
    name: str,
    display_name: str | None = None,
    description: str | None = None,
    icon: str | None = None,
    trigger: str = "cron",
    workflows_dir: Path = WORKFLOWS_DIR,
) -> Path:
    """
    Scaffold manifest.yaml, workflow.py, steps.py and config.example.json.

    Raises:
        ValueError: Bad name or the directory already exists.
    """
    if not re.match(r"^[a-z0-9_]+$", name):
        raise ValueError(
            f"Workflow name '{name}' must be snake_case (lowercase, numbers, underscores)."
        )

    target_dir = Path(workflows_dir) / name
    if target_dir.exists():
        raise ValueError(f"Workflow directory '{target_dir}' already exists.")

    class_name = to_pascal_case(name) + "Workflow"
    display_name = display_name or name.replace("_", " ").title()
    description = description or f"Description for {display_name}"
    icon = icon or "⚡"
    trigger_type = TriggerType(trigger)

    target_dir.mkdir(parents=True)
    (target_dir / "__init__.py").write_text(f'"""{display_name} workflow."""\n')

    (target_dir / "manifest.yaml").write_text(
        f"""name: {name}
display_name: "{display_name}"
description: "{description}"
version: "1.0.0"
icon: "{icon}"

triggers:
{_TRIGGER_YAML[trigger]}

settings: []

tags:
  - new
"""
    )

    (target_dir / "workflow.py").write_text(
        f'''"""
{display_name} — trigger handlers.

manifest.yaml is auto-loaded by BaseWorkflow.
"""

from chainpilot.base_workflow import BaseWorkflow
from chainpilot.core import PipelineBuilder, WorkflowContext
from chainpilot.models import TriggerType, WorkflowConfig

from workflows.{name}.steps import process


async def on_{trigger_type.value}(ctx: WorkflowContext, payload) -> object:
    pipeline = PipelineBuilder("{name}").step(process).build()
    result = await pipeline.execute(ctx, initial_input={{"payload": payload}})
    return result.output


class {class_name}(BaseWorkflow):
    """{display_name} workflow."""

    config_schema = WorkflowConfig

    def handlers(self):
        return {{TriggerType.{trigger_type.name}: on_{trigger_type.value}}}
'''
    )

    (target_dir / "steps.py").write_text(
        f'''"""
{display_name} — pipeline steps.

Parameters are filled from the pipeline state by name; `ctx` receives the
WorkflowContext. Return a dict to merge into the state; the value under
"result" becomes the run output.
"""


def process(ctx, payload) -> dict:
    ctx.logger.info("processing", payload=str(payload))
    return {{"result": "ok"}}
'''
    )

    (target_dir / "config.example.json").write_text('{\n  "schedule": "*/30 * * * * *"\n}\n')

    print(f"✅ Workflow '{name}' created at {target_dir}")
    print("📁 Files created:")
    print("  ├── manifest.yaml        (name & triggers)")
    print("  ├── workflow.py          (trigger handlers)")
    print("  ├── steps.py             (pipeline steps)")
    print("  └── config.example.json  (sample config)")
    return target_dir


# ── Entry point ──────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ChainPilot CLI")
    parser.add_argument("--workflows-dir", help="Directory to discover workflows in")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List discovered workflows")

    cron_parser = subparsers.add_parser("run-cron", help="Run a workflow's cron handler once")
    cron_parser.add_argument("workflow")
    cron_parser.add_argument("--config", required=True, help="Workflow config file (JSON/YAML)")
    cron_parser.add_argument("--scheduled-time", help="ISO-8601 tick time (default: now)")

    log_parser = subparsers.add_parser("run-log", help="Run a workflow's log handler once")
    log_parser.add_argument("workflow")
    log_parser.add_argument("--config", required=True)
    log_parser.add_argument("--address", required=True, help="Emitting contract address")
    log_parser.add_argument("--topic", action="append", help="32-byte hex topic (repeatable)")
    log_parser.add_argument("--data", help="Hex log data")
    log_parser.add_argument("--chain", help="Chain selector name the log came from")

    poll_parser = subparsers.add_parser(
        "poll-logs", help="Route the watched contracts' logs over a block range"
    )
    poll_parser.add_argument("workflow")
    poll_parser.add_argument("--config", required=True)
    poll_parser.add_argument("--from-block", type=int, required=True)
    poll_parser.add_argument("--to-block", type=int)

    manual_parser = subparsers.add_parser(
        "run-manual", help="Run a workflow's manual handler once"
    )
    manual_parser.add_argument("workflow")
    manual_parser.add_argument("--config", required=True)
    manual_parser.add_argument(
        "--payload", type=json.loads, help="JSON payload handed to the handler"
    )

    create_parser = subparsers.add_parser("create-workflow", help="Create a new workflow")
    create_parser.add_argument("name", help="Workflow name (snake_case)")
    create_parser.add_argument("--display-name")
    create_parser.add_argument("--description")
    create_parser.add_argument("--icon")
    create_parser.add_argument(
        "--trigger",
        choices=[t.value for t in TriggerType],
        default="cron",
        help="Primary trigger type",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_platform_settings()
    setup_logging(level=settings.log_level_number, json_output=settings.log_json)

    workflows_dir = Path(args.workflows_dir or settings.workflows_dir)

    if args.command == "create-workflow":
        try:
            create_workflow(
                args.name,
                args.display_name,
                args.description,
                args.icon,
                args.trigger,
                workflows_dir,
            )
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        return 0

    registry = WorkflowRegistry(str(workflows_dir))
    registry.discover()

    if args.command == "list":
        return list_workflows(registry)

    setup_tracing(
        otlp_endpoint=settings.otlp_endpoint or None,
        console=settings.trace_console,
    )
    try:
        return asyncio.run(_run(args, registry))
    except (ChainPilotError, KeyError) as e:
        logger.error("cli_failed", command=args.command, error=str(e))
        print(f"Error: {e}")
        return 1
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
