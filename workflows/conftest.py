"""
Shared fixtures for the workflow test suites.

Provides:
  - settings: PlatformSettings with test values, no .env
  - http: real HTTPConnector whose transport answers from canned routes
  - telegram: connector with an AsyncMock `notify`
  - evm: connector handing out FakeEVMClient instances per chain
  - connectors: ConnectorRegistry wiring the above plus the real PythConnector
  - pyth_body: factory for Hermes response bodies
"""

import json
from unittest.mock import AsyncMock

import pytest
from eth_abi import encode as abi_encode
from eth_utils import function_abi_to_4byte_selector
from eth_utils.abi import collapse_if_tuple
from opentelemetry import trace

from chainpilot.config import PlatformSettings
from chainpilot.connectors.base_connector import BaseConnector
from chainpilot.connectors.http_connector import HTTPConnector, HTTPResponse
from chainpilot.connectors.pyth_connector import PythConnector
from chainpilot.connectors.registry import ConnectorRegistry
from chainpilot.errors import ContractReadError
from chainpilot.models import TxStatus, WriteResult
from chainpilot.networks import get_network

TX_HASH = bytes.fromhex("ab" * 32)


@pytest.fixture(autouse=True)
def disable_tracing():
    from opentelemetry.sdk.trace import TracerProvider

    trace.set_tracer_provider(TracerProvider())
    yield


# ── Connector Fakes ──────────────────────────────────────────────────


class StubHTTPConnector(HTTPConnector):
    """HTTPConnector whose requests are answered from `routes` (substring match)."""

    def __init__(self):
        super().__init__()
        self.routes: list[tuple[str, HTTPResponse]] = []
        self.client.send_request = AsyncMock(side_effect=self._respond)

    def add_json(self, match: str, payload, status_code: int = 200) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.routes.append((match, HTTPResponse(status_code=status_code, body=body)))

    def add_status(self, match: str, status_code: int) -> None:
        self.routes.append((match, HTTPResponse(status_code=status_code, body=b"")))

    @property
    def requested_urls(self) -> list[str]:
        return [call.args[1] for call in self.client.send_request.call_args_list]

    async def _respond(self, method, url, *, headers=None, body=None):
        for match, response in self.routes:
            if match in url:
                return response
        return HTTPResponse(status_code=404, body=b"")


class FakeTelegramConnector(BaseConnector):
    @property
    def name(self) -> str:
        return "telegram"

    @property
    def icon(self) -> str:
        return "📱"

    @property
    def description(self) -> str:
        return "Test Telegram"

    def __init__(self):
        self.notify = AsyncMock(return_value={"message_id": 42})


class FakeEVMClient:
    """
    Chain client answering `call_contract` from stubbed reads, keyed by
    (address, selector). Unstubbed reads raise ContractReadError.
    """

    def __init__(self, chain_selector_name: str):
        self.network = get_network(chain_selector_name, is_testnet=True)
        self._reads: dict[tuple[str, bytes], bytes] = {}
        self.call_contract = AsyncMock(side_effect=self._call)
        self.write_report = AsyncMock(
            return_value=WriteResult(status=TxStatus.SUCCESS, tx_hash=TX_HASH)
        )

    def stub_read(self, address: str, abi: list[dict], fn_name: str, *values) -> None:
        fn_abi = next(e for e in abi if e.get("type") == "function" and e["name"] == fn_name)
        types = [collapse_if_tuple(o) for o in fn_abi["outputs"]]
        key = (address.lower(), function_abi_to_4byte_selector(fn_abi))
        self._reads[key] = abi_encode(types, list(values))

    async def _call(self, to, data, *, block="finalized", from_address=None):
        key = (to.lower(), bytes(data[:4]))
        if key not in self._reads:
            raise ContractReadError(f"no stubbed read for {to}", address=to)
        return self._reads[key]


class FakeEVMConnector(BaseConnector):
    @property
    def name(self) -> str:
        return "evm"

    @property
    def icon(self) -> str:
        return "⛓️"

    @property
    def description(self) -> str:
        return "Test chains"

    def __init__(self):
        self.account = None
        self.clients: dict[str, FakeEVMClient] = {}

    def client(self, chain_selector_name: str) -> FakeEVMClient:
        if chain_selector_name not in self.clients:
            self.clients[chain_selector_name] = FakeEVMClient(chain_selector_name)
        return self.clients[chain_selector_name]


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def settings():
    return PlatformSettings(
        _env_file=None,
        telegram_bot_token="test-token",
        telegram_chat_id="42",
        sender_private_key="",
    )


@pytest.fixture
def http():
    return StubHTTPConnector()


@pytest.fixture
def telegram():
    return FakeTelegramConnector()


@pytest.fixture
def evm():
    return FakeEVMConnector()


@pytest.fixture
def connectors(http, telegram, evm):
    registry = ConnectorRegistry()
    registry.register(http)
    registry.register(PythConnector(http))
    registry.register(telegram)
    registry.register(evm)
    return registry


@pytest.fixture
def pyth_body():
    """Factory: Hermes body with one parsed entry per (id, price, expo)."""

    def _make(*entries):
        return {
            "binary": {"encoding": "hex", "data": []},
            "parsed": [
                {
                    "id": feed_id,
                    "price": {
                        "price": price,
                        "conf": "1000",
                        "expo": expo,
                        "publish_time": 1760000000,
                    },
                    "ema_price": {
                        "price": price,
                        "conf": "1000",
                        "expo": expo,
                        "publish_time": 1760000000,
                    },
                }
                for feed_id, price, expo in entries
            ],
        }

    return _make
