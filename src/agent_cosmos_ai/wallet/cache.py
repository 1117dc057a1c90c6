"""Two-level cache for wallet data.

A process-local TTL map sits in front of an optional persistent layer kept
in the profile's SQLite database, so restarts within the TTL window don't
hit the chain or the price API again.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agent_cosmos_ai.storage.database import Database

logger = logging.getLogger("agent_cosmos_ai.wallet.cache")


@dataclass
class MemoryCache:
    """TTL map keyed by string; expiry measured on the monotonic clock."""

    ttl_seconds: float
    _entries: dict[str, tuple[float, Any]] = field(default_factory=dict)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires, value = entry
        if expires <= time.monotonic():
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (time.monotonic() + self.ttl_seconds, value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class WalletCache:
    """Memory cache backed by the ``cache_entries`` table."""

    def __init__(
        self,
        db: Database | None = None,
        ttl_seconds: float = 300,
        namespace: str = "cosmos/wallet",
    ) -> None:
        self.db = db
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace
        self.memory = MemoryCache(ttl_seconds)

    def _storage_key(self, key: str) -> str:
        return f"{self.namespace}/{key}"

    @property
    def _persistent(self) -> bool:
        return self.db is not None and self.db.connected

    async def _read_persistent(self, key: str) -> Any | None:
        row = await self.db.fetch_one(
            "SELECT value, expires_at FROM cache_entries WHERE key = ?",
            (self._storage_key(key),),
        )
        if row is None:
            return None
        if row["expires_at"] <= time.time():
            await self.db.execute(
                "DELETE FROM cache_entries WHERE key = ?", (self._storage_key(key),)
            )
            return None
        return json.loads(row["value"])

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on a miss."""
        value = self.memory.get(key)
        if value is not None:
            return value

        if self._persistent:
            value = await self._read_persistent(key)
            if value is not None:
                self.memory.set(key, value)
                return value
        return None

    async def set(self, key: str, value: Any) -> None:
        self.memory.set(key, value)
        if self._persistent:
            await self.db.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value, expires_at) "
                "VALUES (?, ?, ?)",
                (
                    self._storage_key(key),
                    json.dumps(value, default=str),
                    time.time() + self.ttl_seconds,
                ),
            )

    async def delete(self, key: str) -> None:
        self.memory.delete(key)
        if self._persistent:
            await self.db.execute(
                "DELETE FROM cache_entries WHERE key = ?", (self._storage_key(key),)
            )

    async def clear(self) -> None:
        self.memory.clear()
        if self._persistent:
            await self.db.execute(
                "DELETE FROM cache_entries WHERE key LIKE ?", (f"{self.namespace}/%",)
            )
        logger.debug(f"Cleared cache namespace {self.namespace}")
