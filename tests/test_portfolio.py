"""Tests for portfolio valuation and formatting."""

import httpx

from agent_cosmos_ai.wallet.cache import WalletCache
from agent_cosmos_ai.wallet.chains import get_chain, resolve_chain
from agent_cosmos_ai.config import CosmosSettings
from agent_cosmos_ai.wallet.portfolio import (
    UNAVAILABLE_MESSAGE,
    PortfolioService,
    WalletPortfolio,
)


def _service(address, provider, prices, cache=None, chain=None):
    return PortfolioService(
        address,
        chain or get_chain("osmosis"),
        provider,
        prices,
        cache or WalletCache(None, ttl_seconds=60),
    )


async def test_portfolio_value(osmo_recipient, provider, price_feed):
    portfolio = await _service(osmo_recipient, provider, price_feed).fetch_portfolio_value()

    assert isinstance(portfolio, WalletPortfolio)
    assert portfolio.address == osmo_recipient
    assert portfolio.chain == "osmosis"
    native, ibc = portfolio.items
    assert (native.name, native.denom, native.balance) == ("OSMO", "uosmo", "2500000")
    assert native.ui_amount == "2.500000"
    assert native.price_usd == "0.5000"
    assert native.value_usd == "1.25"
    assert (ibc.name, ibc.denom, ibc.ui_amount, ibc.value_usd) == ("IBC", "ibc/27394FB0", "42", None)


async def test_native_token_listed_first(osmo_recipient, provider, ledger, price_feed):
    ledger.balances = {"factory/osmo1abc/ufoo": 5, "uosmo": 1_000_000}
    portfolio = await _service(osmo_recipient, provider, price_feed).fetch_portfolio_value()
    assert [i.denom for i in portfolio.items] == ["uosmo", "factory/osmo1abc/ufoo"]
    assert portfolio.items[1].name == "FACTORY"


async def test_formatted_portfolio(osmo_recipient, provider, price_feed):
    text = await _service(osmo_recipient, provider, price_feed).get_formatted_portfolio("Ossie")
    assert text == (
        "Ossie\n"
        f"Wallet Address: {osmo_recipient}\n"
        "Chain: osmosis (osmosis-1)\n"
        "Total Value: $1.25 (2.5000 OSMO)\n"
        "\n"
        "Token Balances:\n"
        "OSMO (uosmo): 2.500000 ($1.25)\n"
        "IBC (ibc/27394FB0): 42\n"
    )


async def test_empty_wallet(osmo_recipient, provider, ledger, price_feed):
    ledger.balances = {}
    text = await _service(osmo_recipient, provider, price_feed).get_formatted_portfolio("Ossie")
    assert "Total Value: $0.00 (0.0000 OSMO)" in text
    assert "Token Balances" not in text


async def test_results_are_cached(osmo_recipient, provider, ledger, price_feed):
    cache = WalletCache(None, ttl_seconds=60)
    service = _service(osmo_recipient, provider, price_feed, cache)
    first = await service.fetch_portfolio_value()
    second = await service.fetch_portfolio_value()

    assert first == second
    assert ledger.all_balance_calls == 1
    assert price_feed.calls == 1
    assert await cache.get(f"portfolio-{osmo_recipient}") is not None
    assert await cache.get("prices-osmosis") == {"osmosis": "0.5"}


async def test_missing_price_leaves_value_empty(osmo_recipient, provider, make_price_feed):
    portfolio = await _service(osmo_recipient, provider, make_price_feed(prices={})).fetch_portfolio_value()
    assert portfolio.total_usd == "0"
    assert portfolio.total_native == "2.500000"
    assert portfolio.items[0].value_usd is None


async def test_custom_denom_skips_price_lookup(osmo_recipient, provider, ledger, price_feed):
    chain = resolve_chain(CosmosSettings(chain_name="osmosis", denom="uion"))
    ledger.balances = {"uion": 3_000_000}
    portfolio = await _service(osmo_recipient, provider, price_feed, chain=chain).fetch_portfolio_value()
    assert price_feed.calls == 0
    assert portfolio.items[0].name == "ION"
    assert portfolio.total_native == "3.000000"


async def test_price_failure_reports_unavailable(osmo_recipient, provider, make_price_feed):
    feed = make_price_feed(error=httpx.ConnectError("boom"))
    text = await _service(osmo_recipient, provider, feed).get_formatted_portfolio("Ossie")
    assert text == UNAVAILABLE_MESSAGE


async def test_chain_failure_reports_unavailable(osmo_recipient, provider, ledger, price_feed):
    ledger.balance_error = ConnectionError("node down")
    text = await _service(osmo_recipient, provider, price_feed).get_formatted_portfolio("Ossie")
    assert text == UNAVAILABLE_MESSAGE
