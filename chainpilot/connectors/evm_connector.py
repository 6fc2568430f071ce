"""
EVMConnector — Contract reads and report writes over JSON-RPC.

One `AsyncEVMClient` per chain selector name, created lazily from the
network table and the RPC overrides in PlatformSettings. Reads raise
`ContractReadError`; writes (`transact`, `write_report`) never raise and
fold every failure into a `WriteResult` with status FATAL, so the caller
decides what a failed write means.

Usage:
    evm = get_connector_registry().get("evm")
    client = evm.client("ethereum-testnet-sepolia")
    data = encode_function_data(COUNTER_ABI, "number")
    raw = await client.call_contract(counter_address, data)
    number = decode_function_result(COUNTER_ABI, "number", raw)
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import aiohttp
import structlog
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import function_abi_to_4byte_selector, to_checksum_address
from eth_utils.abi import collapse_if_tuple
from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from chainpilot.config import PlatformSettings
from chainpilot.connectors.base_connector import BaseConnector
from chainpilot.contracts import RECEIVER_ABI
from chainpilot.errors import ConfigurationError, ContractReadError, DecodeError
from chainpilot.models import Report, TxStatus, WriteResult
from chainpilot.networks import Network, get_network

logger = structlog.get_logger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

RPC_ERRORS = (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError, ValueError)


# ── ABI Helpers ──────────────────────────────────────────────────────


def _find_function(abi: list[dict], fn_name: str) -> dict:
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == fn_name:
            return entry
    raise ConfigurationError(f"Function '{fn_name}' not found in ABI", field="abi")


def _types(params: list[dict]) -> list[str]:
    return [collapse_if_tuple(p) for p in params]


def encode_parameters(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode bare parameters (no selector)."""
    return abi_encode(list(types), list(values))


def encode_function_data(abi: list[dict], fn_name: str, args: Sequence[Any] = ()) -> bytes:
    """Selector + ABI-encoded arguments for `fn_name`."""
    fn_abi = _find_function(abi, fn_name)
    try:
        encoded = abi_encode(_types(fn_abi["inputs"]), list(args))
    except EncodingError as e:
        raise ConfigurationError(f"Cannot encode arguments for {fn_name}: {e}", field="args") from e
    return function_abi_to_4byte_selector(fn_abi) + encoded


def decode_function_result(abi: list[dict], fn_name: str, data: bytes) -> Any:
    """
    Decode a call result. A single output is returned bare, several
    outputs as a tuple.

    Raises:
        DecodeError: Empty or malformed return data.
    """
    fn_abi = _find_function(abi, fn_name)
    output_types = _types(fn_abi["outputs"])
    if not data:
        raise DecodeError(f"Empty result returned by {fn_name}")
    try:
        values = abi_decode(output_types, bytes(data))
    except DecodingError as e:
        raise DecodeError(f"Cannot decode result of {fn_name}: {e}") from e
    return values[0] if len(values) == 1 else tuple(values)


def load_account(private_key: str, *, field: str) -> LocalAccount | None:
    """
    Signer for a hex private key, or None when the key is empty.

    Raises:
        ConfigurationError: The key is not 32 bytes of hex.
    """
    if not private_key:
        return None
    try:
        return Account.from_key(private_key)
    except ValueError as e:
        raise ConfigurationError(
            f"{field.upper()} is not a valid key", field=field
        ) from e


# ── Async EVM Client ─────────────────────────────────────────────────


class AsyncEVMClient:
    """Reads and writes against a single chain."""

    def __init__(
        self,
        network: Network,
        rpc_url: str,
        *,
        account: LocalAccount | None = None,
        timeout: float = 30.0,
    ):
        self.network = network
        self._account = account
        self._w3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    @property
    def w3(self) -> AsyncWeb3:
        return self._w3

    async def call_contract(
        self,
        to: str,
        data: bytes,
        *,
        block: str | int = "finalized",
        from_address: str = ZERO_ADDRESS,
    ) -> bytes:
        """eth_call `data` on `to` at `block`. Returns the raw return data."""
        try:
            result = await self._w3.eth.call(
                {"from": from_address, "to": to_checksum_address(to), "data": data},
                block_identifier=block,
            )
        except RPC_ERRORS as e:
            raise ContractReadError(
                f"Contract call failed on {self.network.chain_selector_name}: {e}",
                address=to,
            ) from e
        return bytes(result)

    async def get_balance(self, address: str, *, block: str | int = "latest") -> int:
        try:
            return await self._w3.eth.get_balance(to_checksum_address(address), block)
        except RPC_ERRORS as e:
            raise ContractReadError(f"Balance lookup failed: {e}", address=address) from e

    async def get_code(self, address: str, *, block: str | int = "latest") -> bytes:
        """Deployed bytecode at `address`; empty when nothing is deployed."""
        try:
            code = await self._w3.eth.get_code(to_checksum_address(address), block)
        except RPC_ERRORS as e:
            raise ContractReadError(f"Code lookup failed: {e}", address=address) from e
        return bytes(code)

    async def get_logs(
        self,
        addresses: list[str],
        from_block: int,
        to_block: int | str = "latest",
        topics: list[str | None] | None = None,
    ) -> list[dict]:
        """eth_getLogs for `addresses` over an inclusive block range."""
        params: dict[str, Any] = {
            "address": [to_checksum_address(a) for a in addresses],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        if topics:
            params["topics"] = topics
        try:
            logs = await self._w3.eth.get_logs(params)
        except RPC_ERRORS as e:
            raise ContractReadError(f"Log query failed: {e}") from e
        return [dict(log) for log in logs]

    async def write_report(self, receiver: str, report: Report, *, gas_limit: int) -> WriteResult:
        """Deliver `report` to `receiver.onReport(metadata, report)`."""
        return await self.transact(
            receiver,
            RECEIVER_ABI,
            "onReport",
            [report.metadata, report.raw_report],
            gas_limit=gas_limit,
        )

    async def transact(
        self,
        to: str,
        abi: list[dict],
        fn_name: str,
        args: Sequence[Any] = (),
        *,
        gas_limit: int | None = None,
        account: LocalAccount | None = None,
    ) -> WriteResult:
        """
        Sign and send `to.fn_name(*args)`, then wait for the receipt.

        Signs with `account`, or the client's sender key. Gas is estimated
        by the node when `gas_limit` is None. Never raises: transport
        errors, signing errors and missing keys all come back as a FATAL
        result.
        """
        account = account or self._account
        if account is None:
            return WriteResult(status=TxStatus.FATAL, error_message="no sender key configured")

        log = logger.bind(chain=self.network.chain_selector_name, to=to, function=fn_name)
        try:
            contract = self._w3.eth.contract(address=to_checksum_address(to), abi=abi)
            nonce = await self._w3.eth.get_transaction_count(account.address, "pending")
            params: dict[str, Any] = {
                "from": account.address,
                "nonce": nonce,
                "chainId": self.network.chain_id,
            }
            if gas_limit is not None:
                params["gas"] = gas_limit
            tx = await getattr(contract.functions, fn_name)(*args).build_transaction(params)
            signed = account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            log.info("transaction_sent", tx_hash=tx_hash.hex(), nonce=nonce)
            receipt = await self._w3.eth.wait_for_transaction_receipt(tx_hash)
        except RPC_ERRORS as e:
            log.error("transaction_failed", error=str(e))
            return WriteResult(status=TxStatus.FATAL, error_message=str(e))

        if receipt["status"] == 1:
            return WriteResult(status=TxStatus.SUCCESS, tx_hash=bytes(tx_hash))
        return WriteResult(
            status=TxStatus.REVERTED,
            tx_hash=bytes(tx_hash),
            error_message=f"transaction reverted in block {receipt.get('blockNumber')}",
        )

    async def close(self) -> None:
        await self._w3.provider.disconnect()


# ── Connector ────────────────────────────────────────────────────────


class EVMConnector(BaseConnector):
    """EVM chains by chain selector name."""

    @property
    def name(self) -> str:
        return "evm"

    @property
    def icon(self) -> str:
        return "⛓️"

    @property
    def description(self) -> str:
        return "Read contracts and write signed reports on EVM chains"

    def __init__(self, settings: PlatformSettings):
        self._settings = settings
        self._clients: dict[str, AsyncEVMClient] = {}
        self._account = load_account(settings.sender_private_key, field="sender_private_key")

    @property
    def account(self) -> LocalAccount | None:
        return self._account

    def client(self, chain_selector_name: str) -> AsyncEVMClient:
        """
        Client for a chain, created on first use.

        Raises:
            NetworkNotFoundError: Unknown chain selector name, or a mainnet
                name while the platform runs against testnets.
        """
        if chain_selector_name not in self._clients:
            is_testnet = True if self._settings.use_testnets else None
            network = get_network(chain_selector_name, is_testnet=is_testnet)
            rpc_url = self._settings.rpc_url_for(chain_selector_name) or network.default_rpc_url
            self._clients[chain_selector_name] = AsyncEVMClient(
                network,
                rpc_url,
                account=self._account,
                timeout=self._settings.http_timeout_seconds,
            )
            logger.debug("evm_client_created", chain=chain_selector_name, chain_id=network.chain_id)
        return self._clients[chain_selector_name]

    async def teardown(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
