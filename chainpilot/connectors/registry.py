"""
ConnectorRegistry — Lookup and lifecycle for capability blocks.

One registry per process. The CLI builds it once at startup through
`get_connector_registry()`; tests build their own and register mocks.

Usage:
    from chainpilot.connectors import get_connector_registry

    registry = get_connector_registry()
    http = registry.get("http")
    body = await http.client.get_json("https://example.com/feed")
"""

from __future__ import annotations

import structlog

from chainpilot.config import PlatformSettings, get_platform_settings
from chainpilot.connectors.base_connector import BaseConnector, ConnectorInfo
from chainpilot.errors import ConnectorError

logger = structlog.get_logger(__name__)


class ConnectorRegistry:
    """Registry of named connectors with setup/teardown fan-out."""

    def __init__(self):
        self._connectors: dict[str, BaseConnector] = {}

    def register(self, connector: BaseConnector) -> None:
        """Register a connector by its name, replacing any previous one."""
        if connector.name in self._connectors:
            logger.warning(
                "connector_already_registered",
                name=connector.name,
                replacing=True,
            )
        self._connectors[connector.name] = connector
        logger.debug("connector_registered", name=connector.name)

    def get(self, name: str) -> BaseConnector:
        """Get a connector by name. Raises ConnectorError if not found."""
        if name not in self._connectors:
            available = list(self._connectors.keys())
            raise ConnectorError(
                f"Connector '{name}' not found. Available: {available}",
                connector_name=name,
            )
        return self._connectors[name]

    def list_all(self) -> list[ConnectorInfo]:
        return [c.get_info() for c in self._connectors.values()]

    async def setup_all(self) -> None:
        """Initialize all registered connectors. Setup failures propagate."""
        for name, connector in self._connectors.items():
            await connector.setup()
            logger.debug("connector_setup_complete", name=name)

    async def teardown_all(self) -> None:
        """Close every connector, logging (not raising) individual failures."""
        for name, connector in self._connectors.items():
            try:
                await connector.teardown()
            except Exception as e:
                logger.error("connector_teardown_failed", name=name, error=str(e))

    async def health_check_all(self) -> dict[str, bool]:
        results = {}
        for name, connector in self._connectors.items():
            try:
                results[name] = await connector.health_check()
            except Exception:
                results[name] = False
        return results

    @property
    def names(self) -> list[str]:
        return list(self._connectors.keys())

    def __len__(self) -> int:
        return len(self._connectors)

    def __contains__(self, name: str) -> bool:
        return name in self._connectors


# ── Singleton ────────────────────────────────────────────────────────

_registry: ConnectorRegistry | None = None


def get_connector_registry(settings: PlatformSettings | None = None) -> ConnectorRegistry:
    """Singleton accessor for the ConnectorRegistry."""
    global _registry
    if _registry is None:
        _registry = ConnectorRegistry()
        _auto_register_connectors(_registry, settings or get_platform_settings())
    return _registry


def reset_connector_registry() -> None:
    """Drop the singleton (used by tests and by the CLI on shutdown)."""
    global _registry
    _registry = None


def _auto_register_connectors(registry: ConnectorRegistry, settings: PlatformSettings) -> None:
    """Register the built-in connectors."""
    from chainpilot.connectors.evm_connector import EVMConnector
    from chainpilot.connectors.http_connector import HTTPConnector
    from chainpilot.connectors.pyth_connector import PythConnector
    from chainpilot.connectors.telegram_connector import TelegramConnector

    http = HTTPConnector(settings)
    registry.register(http)
    registry.register(PythConnector(http))
    registry.register(TelegramConnector(settings))
    registry.register(EVMConnector(settings))

    logger.info(
        "connectors_auto_registered",
        count=len(registry),
        names=registry.names,
    )
