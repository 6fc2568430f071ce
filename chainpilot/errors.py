"""
Structured Error Taxonomy — Typed exceptions for the ChainPilot workflows.

Design principles:
  - Every error carries `retryable` + `error_code` for automated decisions
  - Hierarchy mirrors the pipeline stages: Configuration → Read → Write → Notify
  - Nothing is retried in-process and `retryable` stays False everywhere;
    the next scheduled tick is the only retry
  - Structured logging friendly: all errors serialize cleanly to JSON
"""

from __future__ import annotations

__all__ = [
    # Base
    "ChainPilotError",
    # Configuration layer
    "ConfigurationError",
    "TriggerValidationError",
    "NetworkNotFoundError",
    # Read layer
    "ReadError",
    "HTTPReadError",
    "ContractReadError",
    "DecodeError",
    "RipcordError",
    # Write layer
    "WriteReportError",
    # Notification layer
    "NotificationError",
    # Connector layer
    "ConnectorError",
]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Base
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ChainPilotError(Exception):
    """Root exception for ChainPilot.

    Attributes:
        retryable: If True, a later scheduled run may succeed.
        error_code: Machine-readable code for dashboards and alerting.
    """

    retryable: bool = False
    error_code: str = "CHAINPILOT_ERROR"

    def __init__(self, message: str, *, detail: str | None = None):
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serialize for structured logging."""
        return {
            "error_code": self.error_code,
            "message": str(self),
            "detail": self.detail,
            "retryable": self.retryable,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Configuration Layer — fatal, never retried
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ConfigurationError(ChainPilotError):
    """Configuration is missing a required field or failed validation."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, *, field: str = "", **kwargs):
        self.field = field
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["field"] = self.field
        return d


class TriggerValidationError(ConfigurationError):
    """The trigger payload is missing data the handler requires."""

    error_code = "TRIGGER_INVALID"


class NetworkNotFoundError(ConfigurationError):
    """No network is known for the configured chain selector name."""

    error_code = "NETWORK_NOT_FOUND"

    def __init__(self, chain_selector_name: str, **kwargs):
        self.chain_selector_name = chain_selector_name
        super().__init__(
            f"Network not found for chain selector name: {chain_selector_name}",
            field="chain_selector_name",
            **kwargs,
        )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Read Layer — HTTP GETs and contract view calls
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ReadError(ChainPilotError):
    """Base for all read-path errors. Aborts the rest of the pipeline."""

    error_code = "READ_ERROR"


class HTTPReadError(ReadError):
    """An HTTP read returned a non-200 status or could not be sent."""

    error_code = "HTTP_READ_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None, url: str = "", **kwargs):
        self.status_code = status_code
        self.url = url
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["status_code"] = self.status_code
        d["url"] = self.url
        return d


class ContractReadError(ReadError):
    """A contract view call failed at the RPC boundary."""

    error_code = "CONTRACT_READ_ERROR"

    def __init__(self, message: str, *, function: str = "", address: str = "", **kwargs):
        self.function = function
        self.address = address
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["function"] = self.function
        d["address"] = self.address
        return d


class DecodeError(ReadError):
    """A response body or call result could not be decoded."""

    error_code = "DECODE_ERROR"


class RipcordError(ReadError):
    """The proof-of-reserve feed has pulled its ripcord."""

    error_code = "RIPCORD"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Write Layer — report + on-chain write
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class WriteReportError(ChainPilotError):
    """A report write finished with a non-success terminal status."""

    error_code = "WRITE_REPORT_FAILED"

    def __init__(self, message: str, *, status: str = "", **kwargs):
        self.status = status
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["status"] = self.status
        return d


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Notification Layer — caught and logged by the pipeline, never propagated
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class NotificationError(ChainPilotError):
    """A notification could not be delivered."""

    error_code = "NOTIFICATION_FAILED"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Connector Layer — lookup/setup problems with integration blocks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ConnectorError(ChainPilotError):
    """A connector is misconfigured or unavailable."""

    error_code = "CONNECTOR_ERROR"

    def __init__(self, message: str, *, connector_name: str | None = None, **kwargs):
        self.connector_name = connector_name
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["connector_name"] = self.connector_name
        return d
