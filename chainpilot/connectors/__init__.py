"""
Connectors — capability blocks workflows reach through the registry.

  - http: off-chain GETs
  - pyth: Pyth Hermes price updates (over http)
  - telegram: notifications
  - evm: contract reads and report writes
"""

from chainpilot.connectors.base_connector import BaseConnector, ConnectorInfo
from chainpilot.connectors.registry import (
    ConnectorRegistry,
    get_connector_registry,
    reset_connector_registry,
)

__all__ = [
    "BaseConnector",
    "ConnectorInfo",
    "ConnectorRegistry",
    "get_connector_registry",
    "reset_connector_registry",
]
