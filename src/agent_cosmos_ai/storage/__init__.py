"""Agent Cosmos AI storage layer -- async SQLite database and Pydantic models."""

from agent_cosmos_ai.storage.database import Database, get_database
from agent_cosmos_ai.storage.models import (
    CacheEntry,
    TransferRecord,
    TransferStatus,
    WalletRecord,
    WalletSource,
)

__all__ = [
    "Database",
    "get_database",
    "CacheEntry",
    "TransferRecord",
    "TransferStatus",
    "WalletRecord",
    "WalletSource",
]
