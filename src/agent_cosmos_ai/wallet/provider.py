"""cosmpy ledger provider for Cosmos-SDK networks."""

from __future__ import annotations

import logging
from typing import Any, Callable

from cosmpy.aerial.client import LedgerClient
from cosmpy.aerial.wallet import Wallet
from cosmpy.crypto.address import Address

from agent_cosmos_ai.wallet.chains import Chain, to_network_config

logger = logging.getLogger("agent_cosmos_ai.wallet.provider")


def _default_client_factory(chain: Chain) -> LedgerClient:
    return LedgerClient(to_network_config(chain))


class CosmosProvider:
    """Manages ledger client connections across Cosmos chains."""

    def __init__(self, client_factory: Callable[[Chain], Any] | None = None) -> None:
        self._client_factory = client_factory or _default_client_factory
        self._instances: dict[tuple[str, str], Any] = {}

    def get_client(self, chain: Chain) -> LedgerClient:
        """Return a (cached) ledger client for the given chain and endpoint."""
        key = (chain.chain_id, chain.rpc_url)
        if key in self._instances:
            return self._instances[key]

        client = self._client_factory(chain)
        logger.info(f"Connected ledger client for {chain.name} at {chain.rpc_url}")
        self._instances[key] = client
        return client

    def get_balance(self, address: str, chain: Chain, denom: str | None = None) -> int:
        """Get a single balance in base units (e.g. uatom)."""
        client = self.get_client(chain)
        return int(client.query_bank_balance(Address(address), denom=denom or chain.denom))

    def get_all_balances(self, address: str, chain: Chain) -> list[tuple[str, int]]:
        """Get every bank balance of *address* as ``(denom, base amount)`` pairs."""
        client = self.get_client(chain)
        coins = client.query_bank_all_balances(Address(address))
        return [(coin.denom, int(coin.amount)) for coin in coins]

    def send_tokens(
        self,
        wallet: Wallet,
        recipient: str,
        amount: int,
        denom: str,
        chain: Chain,
        memo: str | None = None,
        gas_limit: int | None = None,
        wait: bool = True,
        timeout: float | None = None,
    ) -> str:
        """Sign and broadcast a bank send.

        Gas is simulated by the client unless *gas_limit* is given; the fee
        is derived from the chain's minimum gas price.

        Returns the transaction hash.
        """
        client = self.get_client(chain)
        tx = client.send_tokens(
            Address(recipient),
            amount,
            denom,
            wallet,
            memo=memo or None,
            gas_limit=gas_limit,
        )
        tx_hash = tx.tx_hash
        logger.info(f"Broadcast {amount}{denom} to {recipient} on {chain.name}: {tx_hash}")

        if wait:
            response = tx.wait_to_complete(timeout=timeout)
            code = getattr(response, "code", 0)
            if code:
                raw_log = getattr(response, "raw_log", "")
                raise RuntimeError(f"Transaction {tx_hash} failed with code {code}: {raw_log}")
        return tx_hash
