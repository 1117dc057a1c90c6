"""Chain definitions for supported Cosmos-SDK networks."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cosmpy.aerial.client import NetworkConfig

    from agent_cosmos_ai.config import CosmosSettings


@dataclass(frozen=True)
class Chain:
    """A Cosmos-SDK blockchain network."""

    name: str
    chain_id: str
    rpc_url: str
    prefix: str
    denom: str
    decimals: int
    symbol: str
    coingecko_id: str
    gas_price: float
    explorer_url: str


CHAINS: dict[str, Chain] = {
    "cosmoshub": Chain(
        name="cosmoshub",
        chain_id="cosmoshub-4",
        rpc_url="https://rest.cosmos.directory/cosmoshub",
        prefix="cosmos",
        denom="uatom",
        decimals=6,
        symbol="ATOM",
        coingecko_id="cosmos",
        gas_price=0.025,
        explorer_url="https://www.mintscan.io/cosmos",
    ),
    "osmosis": Chain(
        name="osmosis",
        chain_id="osmosis-1",
        rpc_url="https://lcd.osmosis.zone",
        prefix="osmo",
        denom="uosmo",
        decimals=6,
        symbol="OSMO",
        coingecko_id="osmosis",
        gas_price=0.025,
        explorer_url="https://www.mintscan.io/osmosis",
    ),
    "osmosistestnet": Chain(
        name="osmosistestnet",
        chain_id="osmo-test-5",
        rpc_url="https://lcd.osmotest5.osmosis.zone",
        prefix="osmo",
        denom="uosmo",
        decimals=6,
        symbol="OSMO",
        coingecko_id="osmosis",
        gas_price=0.025,
        explorer_url="https://www.mintscan.io/osmosis-testnet",
    ),
    "cosmoshubtestnet": Chain(
        name="cosmoshubtestnet",
        chain_id="theta-testnet-001",
        rpc_url="https://rest.sentry-01.theta-testnet.polypore.xyz",
        prefix="cosmos",
        denom="uatom",
        decimals=6,
        symbol="ATOM",
        coingecko_id="cosmos",
        gas_price=0.025,
        explorer_url="https://www.mintscan.io/cosmoshub-testnet",
    ),
}


def get_chain(name: str) -> Chain:
    """Get a chain by name. Raises ``KeyError`` if not found."""
    if name not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    return CHAINS[name]


def list_chain_names() -> list[str]:
    """Return the names of all supported chains."""
    return list(CHAINS.keys())


def resolve_chain(settings: CosmosSettings) -> Chain:
    """Return the configured chain with any endpoint/denom overrides applied."""
    chain = get_chain(settings.chain_name)
    overrides: dict[str, object] = {}
    if settings.rpc_url:
        overrides["rpc_url"] = settings.rpc_url
    if settings.denom and settings.denom != chain.denom:
        overrides["denom"] = settings.denom
        # A custom denom has no known display symbol or price id.
        overrides["symbol"] = settings.denom.lstrip("u").upper()
        overrides["coingecko_id"] = ""
    if settings.decimals is not None:
        overrides["decimals"] = settings.decimals
    return replace(chain, **overrides) if overrides else chain


def to_network_config(chain: Chain) -> NetworkConfig:
    """Build a cosmpy ``NetworkConfig`` for *chain*.

    Plain ``http(s)://`` endpoints are treated as REST (LCD) endpoints.
    """
    from cosmpy.aerial.client import NetworkConfig

    url = chain.rpc_url
    if url.startswith(("http://", "https://")):
        url = f"rest+{url}"
    return NetworkConfig(
        chain_id=chain.chain_id,
        url=url,
        fee_minimum_gas_price=chain.gas_price,
        fee_denomination=chain.denom,
        staking_denomination=chain.denom,
    )


def explorer_tx_url(chain: Chain, tx_hash: str) -> str:
    return f"{chain.explorer_url}/tx/{tx_hash}"
