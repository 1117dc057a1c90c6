"""Wallet portfolio valuation and prompt formatting."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from agent_cosmos_ai.wallet.cache import WalletCache
from agent_cosmos_ai.wallet.chains import Chain
from agent_cosmos_ai.wallet.pricing import PriceFeed
from agent_cosmos_ai.wallet.provider import CosmosProvider
from agent_cosmos_ai.wallet.units import format_amount, from_base_units

logger = logging.getLogger("agent_cosmos_ai.wallet.portfolio")

UNAVAILABLE_MESSAGE = "Unable to fetch wallet information. Please try again later."


class PortfolioItem(BaseModel):
    name: str
    denom: str
    decimals: Optional[int] = None
    balance: str  # raw base units
    ui_amount: str
    price_usd: Optional[str] = None
    value_usd: Optional[str] = None


class WalletPortfolio(BaseModel):
    address: str
    chain: str
    total_usd: str = "0"
    total_native: str = "0"
    items: list[PortfolioItem] = Field(default_factory=list)


class PortfolioService:
    """Builds (and caches) the portfolio of one wallet address on one chain."""

    def __init__(
        self,
        address: str,
        chain: Chain,
        provider: CosmosProvider,
        prices: PriceFeed,
        cache: WalletCache,
    ) -> None:
        self.address = address
        self.chain = chain
        self.provider = provider
        self.prices = prices
        self.cache = cache

    @property
    def portfolio_key(self) -> str:
        return f"portfolio-{self.address}"

    async def fetch_prices(self) -> dict[str, str]:
        """Return ``{coingecko_id: usd}`` for the chain's native token."""
        coin_id = self.chain.coingecko_id
        if not coin_id:
            return {}

        cache_key = f"prices-{coin_id}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for fetch_prices")
            return cached
        logger.debug("Cache miss for fetch_prices")

        try:
            fetched = await self.prices.fetch_usd_prices([coin_id])
        except Exception as e:
            logger.error(f"Error fetching {self.chain.symbol} price: {e}")
            raise

        prices = {k: str(v) for k, v in fetched.items()}
        await self.cache.set(cache_key, prices)
        return prices

    async def fetch_portfolio_value(self) -> WalletPortfolio:
        """Query balances and value them in USD."""
        cached = await self.cache.get(self.portfolio_key)
        if cached is not None:
            logger.debug(f"Cache hit for fetch_portfolio_value ({self.address})")
            return WalletPortfolio.model_validate(cached)
        logger.debug(f"Cache miss for fetch_portfolio_value ({self.address})")

        try:
            prices = await self.fetch_prices()
            balances = self.provider.get_all_balances(self.address, self.chain)
        except Exception as e:
            logger.error(f"Error fetching portfolio: {e}")
            raise

        native_price = prices.get(self.chain.coingecko_id)
        total_usd = Decimal(0)
        total_native = Decimal(0)
        items: list[PortfolioItem] = []

        for denom, raw in balances:
            if denom == self.chain.denom:
                amount = from_base_units(raw, self.chain.decimals)
                total_native += amount
                item = PortfolioItem(
                    name=self.chain.symbol,
                    denom=denom,
                    decimals=self.chain.decimals,
                    balance=str(raw),
                    ui_amount=format_amount(amount, self.chain.decimals),
                )
                if native_price is not None:
                    value = amount * Decimal(native_price)
                    total_usd += value
                    item.price_usd = format_amount(Decimal(native_price), 4)
                    item.value_usd = format_amount(value, 2)
                # Native token first.
                items.insert(0, item)
            else:
                items.append(
                    PortfolioItem(
                        name=denom.split("/")[0].upper() if "/" in denom else denom,
                        denom=denom,
                        balance=str(raw),
                        ui_amount=str(raw),
                    )
                )

        portfolio = WalletPortfolio(
            address=self.address,
            chain=self.chain.name,
            total_usd=str(total_usd),
            total_native=str(total_native),
            items=items,
        )
        await self.cache.set(self.portfolio_key, portfolio.model_dump(mode="json"))
        logger.info(
            f"Fetched portfolio for {self.address}: "
            f"{portfolio.total_native} {self.chain.symbol} (${portfolio.total_usd})"
        )
        return portfolio

    def format_portfolio(self, agent_name: str, portfolio: WalletPortfolio) -> str:
        lines = [
            agent_name,
            f"Wallet Address: {self.address}",
            f"Chain: {self.chain.name} ({self.chain.chain_id})",
            f"Total Value: ${format_amount(portfolio.total_usd, 2)} "
            f"({format_amount(portfolio.total_native, 4)} {self.chain.symbol})",
        ]
        if portfolio.items:
            lines.append("")
            lines.append("Token Balances:")
            for item in portfolio.items:
                line = f"{item.name} ({item.denom}): {item.ui_amount}"
                if item.value_usd is not None:
                    line += f" (${item.value_usd})"
                lines.append(line)
        return "\n".join(lines) + "\n"

    async def get_formatted_portfolio(self, agent_name: str) -> str:
        try:
            portfolio = await self.fetch_portfolio_value()
            return self.format_portfolio(agent_name, portfolio)
        except Exception as e:
            logger.error(f"Error generating portfolio report: {e}")
            return UNAVAILABLE_MESSAGE
