"""
Network table — Chainlink chain-selector names mapped to EVM chains.

Workflow configs name chains the way Chainlink does
(``ethereum-testnet-sepolia``); the EVM connector needs a chain id and an
RPC endpoint. RPC endpoints can be overridden per chain through
``PlatformSettings.rpc_urls``.
"""

from __future__ import annotations

from dataclasses import dataclass

from chainpilot.errors import NetworkNotFoundError


@dataclass(frozen=True)
class Network:
    """A single EVM network."""

    chain_selector_name: str
    chain_selector: int
    chain_id: int
    is_testnet: bool
    default_rpc_url: str


_NETWORKS: dict[str, Network] = {
    n.chain_selector_name: n
    for n in (
        Network(
            "ethereum-mainnet",
            5009297550715157269,
            1,
            False,
            "https://ethereum-rpc.publicnode.com",
        ),
        Network(
            "ethereum-testnet-sepolia",
            16015286601757825753,
            11155111,
            True,
            "https://ethereum-sepolia-rpc.publicnode.com",
        ),
        Network(
            "ethereum-mainnet-base-1",
            15971525489660198786,
            8453,
            False,
            "https://mainnet.base.org",
        ),
        Network(
            "ethereum-testnet-sepolia-base-1",
            10344971235874465080,
            84532,
            True,
            "https://sepolia.base.org",
        ),
        Network(
            "ethereum-testnet-sepolia-arbitrum-1",
            3478487238524512106,
            421614,
            True,
            "https://sepolia-rollup.arbitrum.io/rpc",
        ),
        Network(
            "polygon-mainnet",
            4051577828743386545,
            137,
            False,
            "https://polygon-rpc.com",
        ),
        Network(
            "polygon-testnet-amoy",
            16281711391670634445,
            80002,
            True,
            "https://rpc-amoy.polygon.technology",
        ),
        Network(
            "avalanche-testnet-fuji",
            14767482510784806043,
            43113,
            True,
            "https://api.avax-test.network/ext/bc/C/rpc",
        ),
    )
}


def get_network(chain_selector_name: str, *, is_testnet: bool | None = None) -> Network:
    """
    Resolve a chain selector name.

    Raises:
        NetworkNotFoundError: If the name is unknown, or it names a mainnet
            when ``is_testnet=True`` is requested (and vice versa).
    """
    network = _NETWORKS.get(chain_selector_name)
    if network is None:
        raise NetworkNotFoundError(chain_selector_name)
    if is_testnet is not None and network.is_testnet != is_testnet:
        raise NetworkNotFoundError(chain_selector_name)
    return network


def list_networks() -> list[Network]:
    return list(_NETWORKS.values())
