"""
Platform Models — Shared Pydantic models for the workflow framework.

Defines the core data structures used across all workflows:
  - TriggerConfig: How a workflow is triggered (cron or chain log)
  - CronPayload / EVMLog: What a trigger delivers to a handler
  - WorkflowManifest: Declarative workflow metadata
  - EVMConfig / WorkflowConfig: Validated, immutable per-workflow config
  - TxStatus / Report / WriteResult: The write boundary
  - WorkflowRun: Record of a single workflow execution
"""

from __future__ import annotations

import enum
import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Trigger Configuration ────────────────────────────────────────────


class TriggerType(str, enum.Enum):
    """Supported trigger types for workflows."""

    CRON = "cron"
    LOG = "log"
    MANUAL = "manual"


class TriggerConfig(BaseModel):
    """Configuration for a single workflow trigger."""

    type: TriggerType
    # Cron-specific: name of the config field holding the schedule
    schedule_field: str = "schedule"
    # Log-specific: dotted config paths of the watched address and its chain
    # (e.g. "evms.0.message_emitter_address")
    address_field: str | None = None
    chain_field: str | None = None
    # Human-readable description
    description: str = ""


# ── Trigger Payloads ─────────────────────────────────────────────────


class CronPayload(BaseModel):
    """Delivered by the scheduler on every tick."""

    scheduled_execution_time: datetime | None = None


class EVMLog(BaseModel):
    """A decoded chain-log event delivered by the log watcher."""

    address: str
    topics: list[bytes] = Field(default_factory=list)
    data: bytes = b""
    tx_hash: bytes | None = None
    block_number: int | None = None
    # Chain the log came from; unset matches a watched address on any chain
    chain_selector_name: str | None = None

    @field_validator("topics", mode="before")
    @classmethod
    def _coerce_topics(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_to_bytes(v) for v in value]
        return value

    @field_validator("data", "tx_hash", mode="before")
    @classmethod
    def _coerce_hex(cls, value: Any) -> Any:
        if value is None:
            return value
        return _to_bytes(value)


def _to_bytes(value: Any) -> Any:
    if isinstance(value, str):
        text = value[2:] if value.startswith("0x") else value
        return bytes.fromhex(text)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    # web3 HexBytes is a bytes subclass
    if isinstance(value, bytes):
        return bytes(value)
    return value


# ── Settings Configuration ───────────────────────────────────────────


class SettingConfig(BaseModel):
    """A single documented setting for a workflow (shown by `list`)."""

    key: str
    required: bool = False
    default: Any = None
    description: str = ""


# ── Workflow Manifest ────────────────────────────────────────────────


class WorkflowManifest(BaseModel):
    """
    Declarative manifest describing a workflow.

    Loaded from manifest.yaml or defined in code. Tells the platform
    everything it needs to know to register, route, and display the workflow.
    """

    name: str  # Unique ID (e.g. "liquidation_watch")
    display_name: str
    description: str = ""
    version: str = "1.0.0"
    icon: str = "⛓️"

    triggers: list[TriggerConfig] = Field(default_factory=list)
    settings: list[SettingConfig] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    enabled: bool = True


# ── Workflow Configuration ───────────────────────────────────────────

_CRON_FIELD = re.compile(r"^[\d*/,\-A-Za-z?LW#]+$")
_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def validate_address(value: str) -> str:
    if not _ADDRESS.match(value):
        raise ValueError(f"not a 20-byte hex address: {value!r}")
    return value


class EVMConfig(BaseModel):
    """Per-chain address set. Workflows extend this with their contracts."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    chain_selector_name: str = Field(alias="chainSelectorName")
    gas_limit: str = Field(alias="gasLimit")
    sender_address: str = Field(alias="senderAddress")

    @field_validator("gas_limit")
    @classmethod
    def _gas_limit_is_integer(cls, value: str) -> str:
        if not value.isdigit() or int(value) <= 0:
            raise ValueError(f"gasLimit must be a positive integer string, got {value!r}")
        return value

    @field_validator("sender_address")
    @classmethod
    def _sender_is_address(cls, value: str) -> str:
        return validate_address(value)

    @property
    def gas_limit_int(self) -> int:
        return int(self.gas_limit)


class WorkflowConfig(BaseModel):
    """
    Base config schema for a workflow.

    Created once at process start from an external JSON/YAML file and
    immutable afterwards. Field aliases keep the camelCase keys the
    deployed config files use.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    schedule: str

    @field_validator("schedule")
    @classmethod
    def _schedule_is_cron(cls, value: str) -> str:
        fields = value.split()
        if len(fields) not in (5, 6) or not all(_CRON_FIELD.match(f) for f in fields):
            raise ValueError(f"schedule must be a 5 or 6 field cron expression, got {value!r}")
        return value


# ── Write Boundary ───────────────────────────────────────────────────


class TxStatus(str, enum.Enum):
    """Terminal status of a submitted write."""

    SUCCESS = "success"
    REVERTED = "reverted"
    FATAL = "fatal"


class Report(BaseModel):
    """Attested payload produced by the report capability."""

    raw_report: bytes
    metadata: bytes = b""
    signatures: list[bytes] = Field(default_factory=list)
    encoder_name: str = "evm"
    signing_algo: str = "ecdsa"
    hashing_algo: str = "keccak256"


class WriteResult(BaseModel):
    """Single result of report + write. Never raises at the boundary."""

    status: TxStatus
    tx_hash: bytes | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == TxStatus.SUCCESS


# ── Workflow Execution ───────────────────────────────────────────────


class RunStatus(str, enum.Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class WorkflowRun(BaseModel):
    """Record of a single workflow execution, returned to the caller."""

    id: str
    workflow_id: str
    status: RunStatus
    trigger_type: TriggerType
    output: Any = None
    error: str | None = None
    error_code: str | None = None
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float = 0


class WorkflowInfo(BaseModel):
    """Summary info for listing workflows."""

    name: str
    display_name: str
    description: str
    version: str
    icon: str
    enabled: bool
    triggers: list[TriggerConfig]
    tags: list[str]
