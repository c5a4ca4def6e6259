"""
Cache types.
"""

from __future__ import annotations

import fnmatch
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol
# ═══════════════════════════════════════════════════════════════════════════════

class Tier[T](Protocol):
    """
    Cache tier protocol.

    `get` returns None on miss, so None itself is not a cacheable value.
    Empty collections are.
    """

    @property
    def name(self) -> str:
        """Tier name for debugging."""
        ...

    async def get(self, key: str) -> T | None:
        """Get value. Returns None on miss or expiry."""
        ...

    async def set(self, key: str, value: T) -> None:
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if existed."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern. Returns count."""
        ...

    def ttl_remaining(self, key: str) -> timedelta | None:
        """Time left before the key expires, None if it never does."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Local Tier — In-Memory LRU with TTL
# ═══════════════════════════════════════════════════════════════════════════════

type Clock = Callable[[], float]


class LocalTier[T]:
    """
    In-memory LRU cache tier with optional TTL.

    Example:
        tier = LocalTier[tuple[ShippingMethod, ...]](max_size=256, ttl=timedelta(minutes=10))
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: timedelta | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._max_size = max_size
        self._ttl = ttl.total_seconds() if ttl is not None else None
        self._clock = clock
        self._entries: OrderedDict[str, tuple[T, float | None]] = OrderedDict()

    @property
    def name(self) -> str:
        return "local"

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._expired(expires_at):
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)

        expires_at = self._clock() + self._ttl if self._ttl is not None else None
        self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        keys = [k for k in self._entries if fnmatch.fnmatch(k, pattern)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def ttl_remaining(self, key: str) -> timedelta | None:
        entry = self._entries.get(key)
        if entry is None or entry[1] is None:
            return None
        return timedelta(seconds=max(0.0, entry[1] - self._clock()))


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cache lookup result with metadata."""
    value: T
    hit: bool
    tier: str | None
    ttl_remaining: timedelta | None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Tier",
    "Clock",
    "LocalTier",
    "CacheResult",
)
