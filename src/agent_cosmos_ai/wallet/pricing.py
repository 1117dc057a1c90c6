"""USD price feed backed by the CoinGecko simple-price API."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Iterable

import httpx

from agent_cosmos_ai.config import PriceConfig

logger = logging.getLogger("agent_cosmos_ai.wallet.pricing")


class PriceFeed:
    """Fetches USD prices with exponential-backoff retries."""

    def __init__(
        self,
        config: PriceConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or PriceConfig()
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "AgentCosmosAI/0.1",
        }
        if self.config.api_key:
            headers["x-cg-demo-api-key"] = self.config.api_key
        return headers

    async def _get_json(self, path: str, params: dict[str, str]) -> dict:
        last_error: Exception | None = None
        attempts = max(1, self.config.max_retries)

        for i in range(attempts):
            try:
                async with httpx.AsyncClient(
                    base_url=self.config.api_url,
                    timeout=self.config.timeout,
                    transport=self._transport,
                ) as client:
                    resp = await client.get(path, params=params, headers=self._headers())
                    resp.raise_for_status()
                    return resp.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Attempt {i + 1} failed: {e}")
                last_error = e
                if i < attempts - 1:
                    await asyncio.sleep(self.config.retry_delay * (2 ** i))

        logger.error(f"All attempts failed. Raising the last error: {last_error}")
        assert last_error is not None
        raise last_error

    async def fetch_usd_prices(self, coingecko_ids: Iterable[str]) -> dict[str, Decimal]:
        """Return ``{coingecko_id: usd price}`` for the ids the API knows."""
        ids = sorted({i for i in coingecko_ids if i})
        if not ids:
            return {}

        data = await self._get_json(
            "/simple/price", {"ids": ",".join(ids), "vs_currencies": "usd"}
        )
        prices: dict[str, Decimal] = {}
        for coin_id in ids:
            usd = (data.get(coin_id) or {}).get("usd")
            if usd is not None:
                prices[coin_id] = Decimal(str(usd))
        return prices
