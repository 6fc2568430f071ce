"""
Liquidation Watch — config models and the action decision type.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field, field_validator

from chainpilot.models import EVMConfig, WorkflowConfig, validate_address


class PriceFeed(BaseModel):
    symbol: str
    id: str


DEFAULT_PRICE_FEEDS = [
    PriceFeed(symbol="SHIB", id="0xf0d57deca57b3da2fe63a493f4c25925fdfd8edf834b20f93e1f84dbd1504d4a"),
    PriceFeed(symbol="PEPE", id="0xd69731a2e74ac1ce884fc3890f7ee324b6deb66147055249568869ed700882e4"),
    PriceFeed(symbol="DEGEN", id="0x9c93e4a22c56885af427ac4277437e756e7ec403fbc892f975d497383bb33560"),
]


class LiquidationEVMConfig(EVMConfig):
    liquidator_address: str = Field(alias="liquidatorAddress")
    set_position_proxy_address: str = Field(alias="setPositionProxyAddress")
    liquidate_collateral_proxy_address: str = Field(alias="liquidateCollateralProxyAddress")

    @field_validator(
        "liquidator_address",
        "set_position_proxy_address",
        "liquidate_collateral_proxy_address",
    )
    @classmethod
    def _is_address(cls, value: str) -> str:
        return validate_address(value)


class LiquidationWatchConfig(WorkflowConfig):
    # Accepted for compatibility with older config files; unused
    url: str | None = None
    price_url: str = Field(alias="priceUrl")
    price_feeds: list[PriceFeed] = Field(
        default_factory=lambda: list(DEFAULT_PRICE_FEEDS), alias="priceFeeds"
    )
    evms: list[LiquidationEVMConfig] = Field(min_length=1)


class LiquidationAction(str, enum.Enum):
    """The one write a tick performs."""

    SET_POSITION = "set_position"
    LIQUIDATE_COLLATERAL = "liquidate_collateral"

    @property
    def description(self) -> str:
        if self is LiquidationAction.SET_POSITION:
            return "Creating Position (Set Position)"
        return "Liquidating Collateral"
