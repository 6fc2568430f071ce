"""
Onchain Data — config and proof-of-reserve response models.
"""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chainpilot.models import EVMConfig, WorkflowConfig, validate_address


class CronMode(str, enum.Enum):
    COUNTER = "counter"
    POR = "por"


class OnchainEVMConfig(EVMConfig):
    token_address: str = Field(alias="tokenAddress")
    por_address: str = Field(alias="porAddress")
    proxy_address: str = Field(alias="proxyAddress")
    balance_reader_address: str = Field(alias="balanceReaderAddress")
    message_emitter_address: str = Field(alias="messageEmitterAddress")
    counter_address: str | None = Field(default=None, alias="counterAddress")
    # Receiver that forwards reports to the counter, when the counter
    # itself does not implement onReport
    counter_proxy_address: str | None = Field(default=None, alias="counterProxyAddress")

    @field_validator(
        "token_address",
        "por_address",
        "proxy_address",
        "balance_reader_address",
        "message_emitter_address",
    )
    @classmethod
    def _is_address(cls, value: str) -> str:
        return validate_address(value)

    @field_validator("counter_address", "counter_proxy_address")
    @classmethod
    def _optional_address(cls, value: str | None) -> str | None:
        return validate_address(value) if value is not None else value


class OnchainDataConfig(WorkflowConfig):
    url: str
    mode: CronMode = CronMode.COUNTER
    evms: list[OnchainEVMConfig] = Field(min_length=1)


class PORResponse(BaseModel):
    """Body of the proof-of-reserve endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    account_name: str = Field(default="", alias="accountName")
    total_trust: float = Field(default=0, alias="totalTrust")
    total_token: float = Field(alias="totalToken")
    ripcord: bool = False
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
