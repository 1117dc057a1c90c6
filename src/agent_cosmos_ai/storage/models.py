"""Pydantic models mapping to the Agent Cosmos AI database tables."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _new_id() -> str:
    """Generate a short hex ID (12 characters)."""
    return uuid.uuid4().hex[:12]


class TransferStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SENT = "sent"
    FAILED = "failed"


class WalletSource(str, Enum):
    MNEMONIC = "mnemonic"
    KEYSTORE = "keystore"


class WalletRecord(BaseModel):
    """Maps to the ``wallets`` table."""

    id: str = Field(default_factory=_new_id)
    address: str
    chain: str
    source: WalletSource
    created_at: datetime = Field(default_factory=datetime.utcnow)


class TransferRecord(BaseModel):
    """Maps to the ``transfers`` table (queue and history)."""

    id: str = Field(default_factory=_new_id)
    from_address: str
    to_address: str
    amount: str  # display units, stored as string to preserve precision
    base_amount: str
    denom: str
    chain: str
    memo: str = ""
    requested_by: Optional[str] = None
    status: TransferStatus = TransferStatus.PENDING
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    executed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> TransferRecord:
        return cls.model_validate(row)


class CacheEntry(BaseModel):
    """Maps to the ``cache_entries`` table."""

    key: str
    value: str  # JSON document
    expires_at: float
