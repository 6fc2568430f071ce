import pytest
from unittest.mock import AsyncMock, MagicMock

import aiohttp
from eth_abi import encode as abi_encode
from web3.exceptions import ContractLogicError

from chainpilot.config import PlatformSettings
from chainpilot.contracts import BALANCE_READER_ABI, COUNTER_ABI, IERC20_ABI, LIQUIDATOR_ABI
from chainpilot.errors import (
    ConfigurationError,
    ContractReadError,
    DecodeError,
    NetworkNotFoundError,
)
from chainpilot.models import Report, TxStatus
from chainpilot.networks import get_network
from chainpilot.connectors.evm_connector import (
    AsyncEVMClient,
    EVMConnector,
    decode_function_result,
    encode_function_data,
    encode_parameters,
)

PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SEPOLIA = "ethereum-testnet-sepolia"
COUNTER = "0x" + "66" * 20
USER = "0x" + "d4" * 20
TX_HASH = bytes.fromhex("ab" * 32)


def _client(account=None):
    return AsyncEVMClient(get_network(SEPOLIA), "http://localhost:8545", account=account)


def _mock_w3(receipt_status=1):
    w3 = MagicMock()
    w3.eth.call = AsyncMock(return_value=abi_encode(["uint256"], [7]))
    w3.eth.get_transaction_count = AsyncMock(return_value=3)
    w3.eth.send_raw_transaction = AsyncMock(return_value=TX_HASH)
    w3.eth.wait_for_transaction_receipt = AsyncMock(
        return_value={"status": receipt_status, "blockNumber": 100}
    )
    contract = MagicMock()
    contract.functions.onReport.return_value.build_transaction = AsyncMock(
        return_value={"to": COUNTER, "data": "0x", "gas": 250_000, "nonce": 3}
    )
    w3.eth.contract.return_value = contract
    return w3


def _account():
    account = MagicMock()
    account.address = "0x" + "88" * 20
    account.sign_transaction.return_value.raw_transaction = b"\x02signed"
    return account


# ── ABI helpers ───────────────────────────────────────────────────────


class TestAbiHelpers:
    def test_encode_function_data_has_selector(self):
        data = encode_function_data(COUNTER_ABI, "increment")
        assert len(data) == 4

    def test_encode_with_args(self):
        data = encode_function_data(LIQUIDATOR_ABI, "isLiquidatable", [USER])
        assert len(data) == 4 + 32
        assert data[-20:] == bytes.fromhex("d4" * 20)

    def test_unknown_function(self):
        with pytest.raises(ConfigurationError, match="'nope' not found"):
            encode_function_data(COUNTER_ABI, "nope")

    def test_bad_arguments(self):
        with pytest.raises(ConfigurationError, match="Cannot encode arguments"):
            encode_function_data(LIQUIDATOR_ABI, "isLiquidatable", ["not-an-address"])

    def test_decode_single_output(self):
        assert decode_function_result(COUNTER_ABI, "number", abi_encode(["uint256"], [9])) == 9

    def test_decode_array_output(self):
        raw = abi_encode(["uint256[]"], [[10, 20]])
        assert list(decode_function_result(BALANCE_READER_ABI, "getNativeBalances", raw)) == [10, 20]

    def test_decode_empty(self):
        with pytest.raises(DecodeError, match="Empty result"):
            decode_function_result(COUNTER_ABI, "number", b"")

    def test_decode_garbage(self):
        with pytest.raises(DecodeError, match="Cannot decode"):
            decode_function_result(COUNTER_ABI, "number", b"\x01\x02")

    def test_encode_parameters(self):
        encoded = encode_parameters(["address", "bool", "uint256"], [USER, True, 100])
        assert len(encoded) == 96
        assert encoded[-1] == 100


# ── AsyncEVMClient ────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestAsyncEVMClient:
    async def test_call_contract(self):
        client = _client()
        client._w3 = _mock_w3()

        raw = await client.call_contract(COUNTER, b"\x01\x02\x03\x04", block="latest")

        assert raw == abi_encode(["uint256"], [7])
        tx, = client._w3.eth.call.await_args.args
        assert tx["data"] == b"\x01\x02\x03\x04"
        assert client._w3.eth.call.await_args.kwargs == {"block_identifier": "latest"}

    async def test_call_contract_rpc_failure(self):
        client = _client()
        client._w3 = _mock_w3()
        client._w3.eth.call.side_effect = aiohttp.ClientConnectionError("refused")

        with pytest.raises(ContractReadError, match="Contract call failed") as exc_info:
            await client.call_contract(COUNTER, b"")
        assert exc_info.value.address == COUNTER

    async def test_get_logs(self):
        client = _client()
        client._w3 = _mock_w3()
        client._w3.eth.get_logs = AsyncMock(return_value=[{"address": COUNTER, "topics": []}])

        logs = await client.get_logs([COUNTER], 10, 20)

        assert logs == [{"address": COUNTER, "topics": []}]
        params = client._w3.eth.get_logs.await_args.args[0]
        assert params["fromBlock"] == 10 and params["toBlock"] == 20

    async def test_get_code(self):
        client = _client()
        client._w3 = _mock_w3()
        client._w3.eth.get_code = AsyncMock(return_value=b"\x60\x80")

        assert await client.get_code(COUNTER) == b"\x60\x80"
        address, block = client._w3.eth.get_code.await_args.args
        assert address.lower() == COUNTER and block == "latest"

    async def test_get_code_rpc_failure(self):
        client = _client()
        client._w3 = _mock_w3()
        client._w3.eth.get_code = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(ContractReadError, match="Code lookup failed"):
            await client.get_code(COUNTER)

    async def test_write_without_account_is_fatal(self):
        client = _client()
        result = await client.write_report(COUNTER, Report(raw_report=b"\x01"), gas_limit=100)
        assert result.status == TxStatus.FATAL
        assert result.error_message == "no sender key configured"

    async def test_write_success(self):
        account = _account()
        client = _client(account)
        client._w3 = _mock_w3(receipt_status=1)

        result = await client.write_report(
            COUNTER, Report(raw_report=b"\x01", metadata=b"\x02"), gas_limit=250_000
        )

        assert result.status == TxStatus.SUCCESS
        assert result.tx_hash == TX_HASH
        build_args = client._w3.eth.contract.return_value.functions.onReport.call_args.args
        assert build_args == (b"\x02", b"\x01")
        tx_params = (
            client._w3.eth.contract.return_value.functions.onReport.return_value
            .build_transaction.await_args.args[0]
        )
        assert tx_params["gas"] == 250_000
        assert tx_params["chainId"] == 11155111
        client._w3.eth.send_raw_transaction.assert_awaited_once_with(b"\x02signed")

    async def test_transact_signs_with_given_account_and_lets_node_estimate_gas(self):
        client = _client(_account())
        client._w3 = _mock_w3()
        functions = client._w3.eth.contract.return_value.functions
        functions.approve.return_value.build_transaction = AsyncMock(return_value={"nonce": 3})
        taker = _account()
        taker.address = "0x" + "99" * 20

        result = await client.transact(COUNTER, IERC20_ABI, "approve", [USER, 10], account=taker)

        assert result.ok
        functions.approve.assert_called_once_with(USER, 10)
        params = functions.approve.return_value.build_transaction.await_args.args[0]
        assert params["from"] == taker.address
        assert "gas" not in params
        taker.sign_transaction.assert_called_once_with({"nonce": 3})

    async def test_write_reverted(self):
        client = _client(_account())
        client._w3 = _mock_w3(receipt_status=0)

        result = await client.write_report(COUNTER, Report(raw_report=b"\x01"), gas_limit=1)

        assert result.status == TxStatus.REVERTED
        assert result.tx_hash == TX_HASH
        assert "reverted in block 100" in result.error_message

    async def test_write_transport_error_is_fatal(self):
        client = _client(_account())
        client._w3 = _mock_w3()
        client._w3.eth.send_raw_transaction.side_effect = ContractLogicError("execution reverted")

        result = await client.write_report(COUNTER, Report(raw_report=b"\x01"), gas_limit=1)

        assert result.status == TxStatus.FATAL
        assert "execution reverted" in result.error_message


# ── Connector ─────────────────────────────────────────────────────────


class TestEVMConnector:
    def test_client_is_cached_per_chain(self):
        connector = EVMConnector(PlatformSettings(_env_file=None))
        client = connector.client(SEPOLIA)

        assert connector.client(SEPOLIA) is client
        assert client.network.chain_id == 11155111

    def test_mainnet_rejected_on_testnets(self):
        connector = EVMConnector(PlatformSettings(_env_file=None, use_testnets=True))
        with pytest.raises(NetworkNotFoundError):
            connector.client("ethereum-mainnet")

    def test_unknown_chain(self):
        connector = EVMConnector(PlatformSettings(_env_file=None))
        with pytest.raises(NetworkNotFoundError):
            connector.client("not-a-chain")

    def test_account_from_private_key(self):
        connector = EVMConnector(PlatformSettings(_env_file=None, sender_private_key=PRIVATE_KEY))
        assert connector.account.address == "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

    def test_no_account_without_key(self):
        connector = EVMConnector(PlatformSettings(_env_file=None))
        assert connector.account is None

    @pytest.mark.parametrize("key", ["0xnothex", "0x1234"])
    def test_malformed_key_is_configuration_error(self, key):
        with pytest.raises(
            ConfigurationError, match="SENDER_PRIVATE_KEY is not a valid key"
        ) as exc_info:
            EVMConnector(PlatformSettings(_env_file=None, sender_private_key=key))
        assert exc_info.value.field == "sender_private_key"

    @pytest.mark.asyncio
    async def test_teardown_closes_clients(self):
        connector = EVMConnector(PlatformSettings(_env_file=None))
        client = connector.client(SEPOLIA)
        client.close = AsyncMock()

        await connector.teardown()

        client.close.assert_awaited_once()
        assert connector._clients == {}
