"""Shared fixtures: an offline ledger client, a temp database and test addresses."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import bech32
import pytest

from agent_cosmos_ai.config import SETTING_KEYS, PluginConfig
from agent_cosmos_ai.storage.database import Database
from agent_cosmos_ai.tools.cosmos_tools import set_current_agent, set_wallet_manager
from agent_cosmos_ai.tools.rate_limiter import RateLimiter
from agent_cosmos_ai.wallet.manager import WalletManager
from agent_cosmos_ai.wallet.provider import CosmosProvider

# BIP-39 test vector, never holds funds.
TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)


def make_address(prefix: str, seed: int = 7, length: int = 20) -> str:
    return bech32.bech32_encode(prefix, bech32.convertbits(bytes([seed] * length), 8, 5))


class FakeTx:
    def __init__(self, tx_hash: str, code: int = 0):
        self.tx_hash = tx_hash
        self.code = code
        self.waited = False

    def wait_to_complete(self, timeout=None):
        self.waited = True
        return SimpleNamespace(code=self.code, raw_log="out of gas" if self.code else "")


class FakeLedgerClient:
    """Stands in for cosmpy's LedgerClient without touching the network."""

    def __init__(self, balances: dict[str, int] | None = None):
        self.balances = dict(balances or {})
        self.sent: list[dict] = []
        self.send_error: Exception | None = None
        self.response_code = 0
        self.balance_error: Exception | None = None
        self.all_balance_calls = 0

    def query_bank_balance(self, address, denom=None):
        if self.balance_error is not None:
            raise self.balance_error
        return self.balances.get(denom, 0)

    def query_bank_all_balances(self, address):
        self.all_balance_calls += 1
        if self.balance_error is not None:
            raise self.balance_error
        return [SimpleNamespace(denom=d, amount=a) for d, a in self.balances.items()]

    def send_tokens(self, destination, amount, denom, sender, memo=None, gas_limit=None):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(
            {
                "destination": str(destination),
                "amount": amount,
                "denom": denom,
                "memo": memo,
                "gas_limit": gas_limit,
            }
        )
        self.last_tx = FakeTx(f"TXHASH{len(self.sent):04d}", self.response_code)
        return self.last_tx


class FakePriceFeed:
    def __init__(self, prices: dict[str, float] | None = None, error: Exception | None = None):
        self.prices = prices if prices is not None else {"osmosis": 0.5, "cosmos": 8.0}
        self.error = error
        self.calls = 0

    async def fetch_usd_prices(self, coingecko_ids):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return {i: Decimal(str(self.prices[i])) for i in coingecko_ids if i in self.prices}


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    for key in [*SETTING_KEYS, "COSMOS_KEYSTORE_PASSWORD", "COINGECKO_API_KEY", "AGENT_COSMOS_PROFILE"]:
        monkeypatch.delenv(key, raising=False)
    RateLimiter._instance = None
    set_wallet_manager(None)
    set_current_agent("unknown")
    yield
    RateLimiter._instance = None
    set_wallet_manager(None)


@pytest.fixture
def mnemonic() -> str:
    return TEST_MNEMONIC


@pytest.fixture
def osmo_recipient() -> str:
    return make_address("osmo")


@pytest.fixture
def cosmos_recipient() -> str:
    return make_address("cosmos")


@pytest.fixture
async def db(tmp_path):
    database = Database(tmp_path / "agent.db")
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient({"uosmo": 2_500_000, "ibc/27394FB0": 42})


@pytest.fixture
def provider(ledger) -> CosmosProvider:
    return CosmosProvider(client_factory=lambda chain: ledger)


@pytest.fixture
def price_feed() -> FakePriceFeed:
    return FakePriceFeed()


@pytest.fixture
def make_price_feed():
    return FakePriceFeed


@pytest.fixture
def make_manager(tmp_path, db, provider, price_feed):
    def _make(config: PluginConfig | None = None, settings: dict | None = None) -> WalletManager:
        if settings is None:
            settings = {"COSMOS_MNEMONIC": TEST_MNEMONIC}
        return WalletManager(
            tmp_path / "wallet",
            db,
            config or PluginConfig(),
            provider=provider,
            price_feed=price_feed,
            settings=settings,
        )

    return _make
