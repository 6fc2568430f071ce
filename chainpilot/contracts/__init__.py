"""Contract ABIs (data only)."""

from chainpilot.contracts.abi import (
    AQUA_ABI,
    AQUA_APP_ABI,
    BALANCE_READER_ABI,
    COUNTER_ABI,
    COUNTER_PROXY_ABI,
    IERC20_ABI,
    LIQUIDATOR_ABI,
    MESSAGE_EMITTER_ABI,
    RECEIVER_ABI,
    RESERVE_MANAGER_ABI,
)

__all__ = [
    "AQUA_ABI",
    "AQUA_APP_ABI",
    "BALANCE_READER_ABI",
    "COUNTER_ABI",
    "COUNTER_PROXY_ABI",
    "IERC20_ABI",
    "LIQUIDATOR_ABI",
    "MESSAGE_EMITTER_ABI",
    "RECEIVER_ABI",
    "RESERVE_MANAGER_ABI",
]
