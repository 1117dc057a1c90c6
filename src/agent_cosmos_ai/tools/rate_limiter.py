"""Rolling-window rate limits for agent-initiated wallet actions."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agent_cosmos_ai.config import RateLimitConfig

DAY_SECONDS = 86400.0

TRANSFERS_DAILY = "transfers_daily"


@dataclass
class RateBucket:
    """Tracks timestamps in a rolling window."""

    max_count: int
    window_seconds: float
    timestamps: list[float] = field(default_factory=list)

    def _prune(self) -> None:
        cutoff = time.monotonic() - self.window_seconds
        self.timestamps = [t for t in self.timestamps if t > cutoff]

    def remaining(self) -> int:
        self._prune()
        return max(0, self.max_count - len(self.timestamps))

    def record(self) -> None:
        self.timestamps.append(time.monotonic())

    def release(self) -> None:
        if self.timestamps:
            self.timestamps.pop()


class RateLimiter:
    """Singleton rate limiter with named buckets."""

    _instance: RateLimiter | None = None

    def __init__(self) -> None:
        self._buckets: dict[str, RateBucket] = {}

    @classmethod
    def get(cls) -> RateLimiter:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def configure(self, key: str, max_count: int, window_seconds: float) -> None:
        """Configure (or replace) a bucket. ``max_count <= 0`` removes the limit."""
        if max_count <= 0:
            self._buckets.pop(key, None)
            return
        self._buckets[key] = RateBucket(max_count=max_count, window_seconds=window_seconds)

    def configure_from(self, config: RateLimitConfig) -> None:
        self.configure(TRANSFERS_DAILY, config.transfers_per_day, DAY_SECONDS)

    def check(self, key: str) -> bool:
        """Return True if the action is allowed under rate limits."""
        bucket = self._buckets.get(key)
        return bucket is None or bucket.remaining() > 0

    def record(self, key: str) -> None:
        bucket = self._buckets.get(key)
        if bucket is not None:
            bucket.record()

    def release(self, key: str) -> None:
        """Give back the most recently recorded slot (the action did not happen)."""
        bucket = self._buckets.get(key)
        if bucket is not None:
            bucket.release()

    def remaining(self, key: str) -> int | None:
        """Remaining actions in the window, ``None`` when unlimited."""
        bucket = self._buckets.get(key)
        return None if bucket is None else bucket.remaining()
