"""
BaseConnector — Abstract base class for all capability blocks.

Workflows never talk to HTTP endpoints, RPC nodes or Telegram directly;
they go through a connector looked up by name on the ConnectorRegistry.
Tests swap a connector for a mock by registering one under the same name.

Usage:
    class MyConnector(BaseConnector):
        name = "my_service"
        icon = "🔌"
        description = "Reads from My Service"

        async def setup(self) -> None:
            self._client = MyServiceClient()
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class ConnectorInfo(BaseModel):
    """Summary info for the `list` CLI command."""

    name: str
    icon: str
    description: str
    healthy: bool = True


class BaseConnector(ABC):
    """
    Abstract base class for all connectors.

    Subclasses MUST define `name`, `icon` and `description`.
    Subclasses MAY override `setup`, `teardown` and `health_check`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique connector identifier (e.g. 'http', 'evm')."""
        ...

    @property
    @abstractmethod
    def icon(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    # ── Lifecycle Hooks ──────────────────────────────────────────────

    async def setup(self) -> None:
        """Called once before the first workflow run."""
        pass

    async def teardown(self) -> None:
        """Called when the process shuts down. Close pools here."""
        pass

    async def health_check(self) -> bool:
        return True

    # ── Info ──────────────────────────────────────────────────────────

    def get_info(self) -> ConnectorInfo:
        return ConnectorInfo(
            name=self.name,
            icon=self.icon,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
