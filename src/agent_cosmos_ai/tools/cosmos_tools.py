"""Agent-facing Cosmos wallet tools.

These tools let agents check balances, view the wallet address and
portfolio, send native tokens, and review the transfer history. When
``transfer.require_approval`` is enabled, ``SEND_TOKEN`` only queues the
transfer; a human approves it from the CLI.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agent_cosmos_ai.storage.models import TransferStatus
from agent_cosmos_ai.tools.rate_limiter import TRANSFERS_DAILY, RateLimiter
from agent_cosmos_ai.tools.registry import ActionResult, tool

if TYPE_CHECKING:
    from agent_cosmos_ai.wallet.manager import WalletManager

logger = logging.getLogger("agent_cosmos_ai.tools.cosmos")

# Module-level state, set at runtime by CosmosPlugin
_wallet_manager: WalletManager | None = None
_current_agent_name: str = "unknown"

INVALID_CONTENT_TEXT = "Unable to process transfer request. Invalid content provided."


def set_wallet_manager(manager: WalletManager | None) -> None:
    """Inject the WalletManager instance (called by CosmosPlugin on load)."""
    global _wallet_manager
    _wallet_manager = manager


def set_current_agent(name: str) -> None:
    """Set the current agent name for transfer attribution."""
    global _current_agent_name
    _current_agent_name = name


def get_current_agent() -> str:
    return _current_agent_name


def _require_wallet() -> WalletManager:
    if _wallet_manager is None:
        raise RuntimeError(
            "Wallet not configured. Set COSMOS_MNEMONIC or run 'agent-cosmos-ai wallet create'."
        )
    return _wallet_manager


def is_transfer_content(recipient: Any, amount: Any) -> bool:
    """Recipient must be a string, amount a string or a number."""
    return isinstance(recipient, str) and (
        isinstance(amount, str)
        or (isinstance(amount, (int, float)) and not isinstance(amount, bool))
    )


@tool(
    "check_balance",
    "Check the agent wallet's balance of the native token or of a specific denom.",
    {
        "type": "object",
        "properties": {
            "denom": {
                "type": "string",
                "description": (
                    "Base denom (e.g. 'uosmo', 'ibc/...') or display symbol (e.g. 'OSMO'). "
                    "Omit for the chain's native token."
                ),
            }
        },
        "required": [],
    },
    similes=["GET_BALANCE", "WALLET_BALANCE"],
)
def check_balance(denom: str = "") -> str:
    try:
        mgr = _require_wallet()
    except RuntimeError as e:
        return f"Error: {e}"

    result = mgr.get_balance(denom.strip() or None)
    if result.get("error"):
        return f"Error: {result['error']}"
    return (
        f"Wallet balance on {result['chain']}: {result['balance']} {result['symbol']}\n"
        f"  Address: {result['address']}"
    )


@tool(
    "get_wallet_address",
    "Get the agent wallet's bech32 address on the configured Cosmos chain.",
    {"type": "object", "properties": {}, "required": []},
)
def get_wallet_address() -> str:
    try:
        mgr = _require_wallet()
    except RuntimeError as e:
        return f"Error: {e}"

    addr = mgr.address
    if addr is None:
        return "Error: no wallet found. Ask the owner to configure one."
    return f"Wallet address on {mgr.chain.name}: {addr}"


@tool(
    "get_wallet_portfolio",
    "Show the agent wallet's token balances and total USD value.",
    {"type": "object", "properties": {}, "required": []},
    similes=["WALLET_PORTFOLIO", "PORTFOLIO"],
)
async def get_wallet_portfolio() -> str:
    try:
        mgr = _require_wallet()
        return await mgr.get_formatted_portfolio(_current_agent_name)
    except RuntimeError as e:
        return f"Error: {e}"


@tool(
    "SEND_TOKEN",
    "Transfer tokens from the agent's wallet to another address",
    {
        "type": "object",
        "properties": {
            "recipient": {
                "type": "string",
                "description": "Recipient bech32 address (e.g. osmo1... or cosmos1...)",
            },
            "amount": {
                "type": ["string", "number"],
                "description": "Amount in display units (e.g. '1.5' for 1.5 OSMO)",
            },
            "denom": {
                "type": "string",
                "description": "Token denom or symbol. Omit for the chain's native token.",
            },
            "memo": {
                "type": "string",
                "description": "Optional transaction memo",
            },
        },
        "required": ["recipient", "amount"],
    },
    similes=["TRANSFER_TOKEN", "TRANSFER_TOKENS", "SEND_ATOM", "SEND_OSMO", "PAY"],
    examples=[
        [
            {
                "user": "{{user1}}",
                "content": {
                    "text": "Send 1 ATOM to cosmos1jlqj24k48syd4mgczfsez93c2jp3l0h3l75d2t",
                },
            },
            {
                "user": "{{user2}}",
                "content": {"text": "I'll send 1 ATOM now...", "action": "SEND_TOKEN"},
            },
        ],
    ],
)
async def send_tokens(
    recipient: Any = None,
    amount: Any = None,
    denom: str = "",
    memo: str = "",
) -> ActionResult:
    logger.info(f"SEND_TOKEN requested by {_current_agent_name}")

    if not is_transfer_content(recipient, amount):
        logger.error("Invalid content for SEND_TOKEN action.")
        return ActionResult(
            success=False,
            text=INVALID_CONTENT_TEXT,
            content={"error": "Invalid transfer content"},
        )

    try:
        mgr = _require_wallet()
        limiter = RateLimiter.get()
        if not limiter.check(TRANSFERS_DAILY):
            raise RuntimeError("daily transfer limit reached. Try again later.")
        # Take the slot before awaiting so concurrent sends cannot share it.
        limiter.record(TRANSFERS_DAILY)
        try:
            record = await mgr.transfer(
                recipient=recipient,
                amount=amount,
                denom=denom or None,
                memo=memo,
                requested_by=_current_agent_name,
            )
        except Exception:
            limiter.release(TRANSFERS_DAILY)
            raise
    except (ValueError, RuntimeError) as e:
        logger.error(f"Error during token transfer: {e}")
        return ActionResult(
            success=False,
            text=f"Error transferring tokens: {e}",
            content={"error": str(e)},
        )

    symbol = mgr.resolve_denom(record.denom)[1]
    if record.status is TransferStatus.PENDING:
        return ActionResult(
            success=True,
            text=(
                f"Transfer request queued (ID: {record.id}).\n"
                f"  To: {record.to_address}\n"
                f"  Amount: {record.amount} {symbol}\n"
                f"  Chain: {record.chain}\n"
                f"  Status: pending (awaiting human approval)"
            ),
            content={
                "success": True,
                "queued": True,
                "id": record.id,
                "amount": record.amount,
                "recipient": record.to_address,
            },
        )

    return ActionResult(
        success=True,
        text=(
            f"Successfully transferred {record.amount} {symbol} to {record.to_address}, "
            f"Transaction: {record.tx_hash}"
        ),
        content={
            "success": True,
            "hash": record.tx_hash,
            "amount": record.amount,
            "recipient": record.to_address,
        },
    )


@tool(
    "list_transfers",
    "List the wallet's transfers (queued and sent), optionally filtered by status.",
    {
        "type": "object",
        "properties": {
            "status": {
                "type": "string",
                "description": "Filter by status: pending, approved, rejected, sent, failed. Leave empty for all.",
            },
        },
        "required": [],
    },
)
async def list_transfers(status: str = "") -> str:
    try:
        mgr = _require_wallet()
    except RuntimeError as e:
        return f"Error: {e}"

    transfers = await mgr.list_transfers(status=status.strip().lower() or None)
    if not transfers:
        return "No transfers found."

    lines = [f"Transfers ({len(transfers)} entries):"]
    for t in transfers:
        line = (
            f"  [{t['id']}] {t['amount']} {mgr.resolve_denom(t['denom'])[1]} -> "
            f"{t['to_address'][:14]}... on {t['chain']} | {t['status']}"
        )
        if t.get("tx_hash"):
            line += f" | tx {t['tx_hash']}"
        lines.append(line)
    return "\n".join(lines)
