"""High-level wallet manager used by the plugin, the agent tools and the CLI."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

from agent_cosmos_ai.config import PluginConfig, get_setting, validate_cosmos_config
from agent_cosmos_ai.storage.models import TransferRecord, TransferStatus, WalletSource
from agent_cosmos_ai.wallet.address import validate_address
from agent_cosmos_ai.wallet.cache import WalletCache
from agent_cosmos_ai.wallet.chains import resolve_chain
from agent_cosmos_ai.wallet.keystore import (
    KEYSTORE_FILE,
    create_wallet,
    decrypt_key,
    load_address,
    wallet_from_mnemonic,
    wallet_from_private_key,
)
from agent_cosmos_ai.wallet.portfolio import PortfolioService
from agent_cosmos_ai.wallet.pricing import PriceFeed
from agent_cosmos_ai.wallet.provider import CosmosProvider
from agent_cosmos_ai.wallet.units import format_amount, from_base_units, to_base_units

if TYPE_CHECKING:
    from cosmpy.aerial.wallet import LocalWallet

    from agent_cosmos_ai.storage.database import Database

logger = logging.getLogger("agent_cosmos_ai.wallet.manager")

NO_WALLET_MESSAGE = (
    "No wallet found. Set COSMOS_MNEMONIC or run 'agent-cosmos-ai wallet create'."
)


@dataclass(frozen=True)
class PreparedTransfer:
    """A validated transfer request, amounts already converted."""

    recipient: str
    denom: str
    symbol: str
    amount: str  # display units, normalised
    base_amount: int


class WalletManager:
    """Orchestrates keys, ledger provider, price feed, cache and database."""

    def __init__(
        self,
        wallet_dir: Path,
        db: Database,
        config: PluginConfig,
        provider: CosmosProvider | None = None,
        cache: WalletCache | None = None,
        price_feed: PriceFeed | None = None,
        settings: Mapping[str, object] | None = None,
    ) -> None:
        self.wallet_dir = wallet_dir
        self.db = db
        self.config = config
        self.settings = dict(settings or {})
        self.cosmos = validate_cosmos_config(self.settings, config.cosmos)
        self.chain = resolve_chain(self.cosmos)
        self.provider = provider or CosmosProvider()
        self.cache = cache or WalletCache(
            db if config.cache.persistent else None,
            ttl_seconds=config.cache.ttl_seconds,
        )
        self.price_feed = price_feed or PriceFeed(config.price)
        self._mnemonic_wallet: LocalWallet | None = None

    # ------------------------------------------------------------------
    # Wallet lifecycle
    # ------------------------------------------------------------------

    @property
    def source(self) -> WalletSource | None:
        """Where the signing key comes from; the mnemonic wins over a keystore."""
        if self.cosmos.mnemonic:
            return WalletSource.MNEMONIC
        if (self.wallet_dir / KEYSTORE_FILE).exists():
            return WalletSource.KEYSTORE
        return None

    def has_wallet(self) -> bool:
        return self.source is not None

    def create(self, password: str, mnemonic: str | None = None) -> str:
        """Create (or import) an encrypted keystore and return the address."""
        return create_wallet(self.wallet_dir, password, self.chain.prefix, mnemonic)

    @property
    def address(self) -> str | None:
        """The wallet address on the configured chain, or ``None``."""
        source = self.source
        if source is WalletSource.MNEMONIC:
            return str(self._wallet_from_mnemonic().address())
        if source is WalletSource.KEYSTORE:
            return load_address(self.wallet_dir, self.chain.prefix)
        return None

    def _wallet_from_mnemonic(self) -> LocalWallet:
        if self._mnemonic_wallet is None:
            self._mnemonic_wallet = wallet_from_mnemonic(
                self.cosmos.mnemonic, self.chain.prefix
            )
        return self._mnemonic_wallet

    def _signing_wallet(self, password: str | None = None) -> LocalWallet:
        source = self.source
        if source is WalletSource.MNEMONIC:
            return self._wallet_from_mnemonic()
        if source is WalletSource.KEYSTORE:
            password = password or get_setting("COSMOS_KEYSTORE_PASSWORD", self.settings)
            if not password:
                raise RuntimeError(
                    "Keystore password required. Set COSMOS_KEYSTORE_PASSWORD "
                    "or approve the transfer from the CLI."
                )
            key = decrypt_key(self.wallet_dir, password)
            return wallet_from_private_key(key, self.chain.prefix)
        raise RuntimeError(NO_WALLET_MESSAGE)

    # ------------------------------------------------------------------
    # Balances and portfolio
    # ------------------------------------------------------------------

    def resolve_denom(self, denom: str | None = None) -> tuple[str, str, int]:
        """Map a base denom or display symbol to ``(denom, symbol, decimals)``.

        Denoms other than the chain's native one are handled in base units.
        """
        denom = (denom or "").strip()
        if not denom or denom.lower() in (self.chain.denom.lower(), self.chain.symbol.lower()):
            return self.chain.denom, self.chain.symbol, self.chain.decimals
        return denom, denom, 0

    def get_balance(self, denom: str | None = None) -> dict:
        """Get a single balance. RPC errors are reported, not raised."""
        addr = self.address
        if addr is None:
            return {"error": NO_WALLET_MESSAGE}

        base_denom, symbol, decimals = self.resolve_denom(denom)
        result = {
            "address": addr,
            "chain": self.chain.name,
            "denom": base_denom,
            "symbol": symbol,
            "balance": "0",
            "raw": "0",
            "error": None,
        }
        try:
            raw = self.provider.get_balance(addr, self.chain, base_denom)
        except Exception as e:
            logger.warning(f"Failed to get {base_denom} balance on {self.chain.name}: {e}")
            result["error"] = str(e)
            return result

        result["raw"] = str(raw)
        result["balance"] = format_amount(from_base_units(raw, decimals), decimals)
        return result

    def portfolio_service(self) -> PortfolioService:
        addr = self.address
        if addr is None:
            raise RuntimeError(NO_WALLET_MESSAGE)
        return PortfolioService(addr, self.chain, self.provider, self.price_feed, self.cache)

    async def get_formatted_portfolio(self, agent_name: str) -> str:
        return await self.portfolio_service().get_formatted_portfolio(agent_name)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def prepare_transfer(
        self, recipient: str, amount: str | int | float, denom: str | None = None
    ) -> PreparedTransfer:
        """Validate the recipient and convert the amount exactly to base units."""
        recipient = validate_address(recipient, self.chain.prefix)
        base_denom, symbol, decimals = self.resolve_denom(denom)
        base_amount = to_base_units(amount, decimals)
        display = from_base_units(base_amount, decimals)

        max_amount = self.config.transfer.max_amount
        if base_denom == self.chain.denom and max_amount > 0:
            if display > Decimal(str(max_amount)):
                raise ValueError(
                    f"Amount {display:f} {symbol} exceeds the per-transfer limit "
                    f"of {max_amount} {symbol}."
                )

        return PreparedTransfer(
            recipient=recipient,
            denom=base_denom,
            symbol=symbol,
            amount=f"{display.normalize():f}",
            base_amount=base_amount,
        )

    async def transfer(
        self,
        recipient: str,
        amount: str | int | float,
        denom: str | None = None,
        memo: str = "",
        requested_by: str | None = None,
        password: str | None = None,
        require_approval: bool | None = None,
    ) -> TransferRecord:
        """Record a transfer and send it, or queue it when approval is required.

        *require_approval* overrides ``transfer.require_approval`` (the CLI
        sends human-initiated transfers directly).

        Raises ``ValueError`` for invalid requests and ``RuntimeError`` when
        the transaction fails.
        """
        prepared = self.prepare_transfer(recipient, amount, denom)
        addr = self.address
        if addr is None:
            raise RuntimeError(NO_WALLET_MESSAGE)

        record = TransferRecord(
            from_address=addr,
            to_address=prepared.recipient,
            amount=prepared.amount,
            base_amount=str(prepared.base_amount),
            denom=prepared.denom,
            chain=self.chain.name,
            memo=memo or self.config.transfer.default_memo,
            requested_by=requested_by,
        )
        await self.db.execute(
            "INSERT INTO transfers "
            "(id, from_address, to_address, amount, base_amount, denom, chain, memo, "
            "requested_by, status, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.id,
                record.from_address,
                record.to_address,
                record.amount,
                record.base_amount,
                record.denom,
                record.chain,
                record.memo,
                record.requested_by,
                record.status.value,
                record.created_at.isoformat(),
            ),
        )

        if require_approval is None:
            require_approval = self.config.transfer.require_approval
        if require_approval:
            logger.info(
                f"Transfer queued: {record.amount} {prepared.symbol} to {record.to_address} "
                f"(id={record.id})"
            )
            return record

        return await self._execute(record, password)

    async def _execute(self, record: TransferRecord, password: str | None) -> TransferRecord:
        # Claim the row in one statement so a transfer is signed at most once.
        cursor = await self.db.execute(
            "UPDATE transfers SET status = ? WHERE id = ? AND status = ?",
            (TransferStatus.APPROVED.value, record.id, TransferStatus.PENDING.value),
        )
        if cursor.rowcount != 1:
            raise ValueError(f"Transfer {record.id} is no longer pending.")

        try:
            wallet = self._signing_wallet(password)
            tx_hash = self.provider.send_tokens(
                wallet=wallet,
                recipient=record.to_address,
                amount=int(record.base_amount),
                denom=record.denom,
                chain=self.chain,
                memo=record.memo,
                gas_limit=self.config.transfer.gas_limit,
                wait=self.config.transfer.wait_for_inclusion,
                timeout=self.config.transfer.timeout_seconds,
            )
        except Exception as exc:
            await self.db.execute(
                "UPDATE transfers SET status = ?, error = ? WHERE id = ?",
                (TransferStatus.FAILED.value, str(exc), record.id),
            )
            logger.error(f"Transfer {record.id} failed: {exc}")
            raise RuntimeError(f"Transaction failed: {exc}") from exc

        record.status = TransferStatus.SENT
        record.tx_hash = tx_hash
        record.executed_at = datetime.utcnow()
        await self.db.execute(
            "UPDATE transfers SET status = ?, tx_hash = ?, executed_at = ? WHERE id = ?",
            (record.status.value, tx_hash, record.executed_at.isoformat(), record.id),
        )
        await self.cache.delete(f"portfolio-{record.from_address}")
        logger.info(f"Transfer {record.id} sent: tx={tx_hash}")
        return record

    async def list_transfers(self, status: str | None = None) -> list[dict]:
        """List transfers, newest first, optionally filtered by status."""
        if status:
            return await self.db.fetch_all(
                "SELECT * FROM transfers WHERE status = ? ORDER BY created_at DESC",
                (status,),
            )
        return await self.db.fetch_all(
            "SELECT * FROM transfers ORDER BY created_at DESC"
        )

    async def get_transfer(self, transfer_id: str) -> dict | None:
        return await self.db.fetch_one(
            "SELECT * FROM transfers WHERE id = ?", (transfer_id,)
        )

    async def _get_pending(self, transfer_id: str) -> dict:
        transfer = await self.get_transfer(transfer_id)
        if transfer is None:
            raise ValueError(f"Transfer {transfer_id} not found.")
        if transfer["status"] != TransferStatus.PENDING.value:
            raise ValueError(
                f"Transfer {transfer_id} is '{transfer['status']}', not pending."
            )
        return transfer

    async def approve_and_send(self, transfer_id: str, password: str | None = None) -> str:
        """Send a queued transfer. Returns the transaction hash.

        This is the human side of the approval queue (CLI).
        """
        row = await self._get_pending(transfer_id)
        if row["chain"] != self.chain.name:
            raise ValueError(
                f"Transfer {transfer_id} targets '{row['chain']}' but the wallet "
                f"is configured for '{self.chain.name}'."
            )
        record = TransferRecord.from_row(row)
        record = await self._execute(record, password)
        return record.tx_hash or ""

    async def reject_transfer(self, transfer_id: str) -> None:
        await self._get_pending(transfer_id)
        await self.db.execute(
            "UPDATE transfers SET status = ? WHERE id = ?",
            (TransferStatus.REJECTED.value, transfer_id),
        )
        logger.info(f"Transfer {transfer_id} rejected.")

    # ------------------------------------------------------------------
    # DB registration
    # ------------------------------------------------------------------

    async def register_wallet_in_db(self) -> None:
        """Persist the wallet address to the wallets table (idempotent)."""
        addr = self.address
        if addr is None:
            return
        existing = await self.db.fetch_one(
            "SELECT id FROM wallets WHERE address = ?", (addr,)
        )
        if existing:
            return
        await self.db.execute(
            "INSERT INTO wallets (id, address, chain, source) VALUES (?, ?, ?, ?)",
            (uuid.uuid4().hex[:12], addr, self.chain.name, self.source.value),
        )
        logger.info(f"Wallet {addr} registered in DB.")
