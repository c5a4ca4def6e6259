"""
Idempotency store — Result-based storage protocol plus an in-memory store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from kungfu import Result, Ok, Error

from emporium.idempotency._types import IdempotencyRecord, RecordState


@dataclass(frozen=True)
class StoreError:
    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Store Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Store[T](Protocol):
    """
    Storage for idempotency records.

    `set_pending` must be atomic: Ok(True) when this caller claimed the key,
    Ok(False) when a live record already exists.
    """

    async def get(self, key: str) -> Result[IdempotencyRecord[T, Any] | None, StoreError]: ...

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]: ...

    async def set_completed(self, key: str, value: T, ttl: timedelta | None) -> Result[None, StoreError]: ...

    async def set_failed(self, key: str, error: Any, ttl: timedelta | None) -> Result[None, StoreError]: ...

    async def delete(self, key: str) -> Result[bool, StoreError]: ...


type StoreAny = Store[Any]


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class _StoredRecord[T]:
    key: str
    state: RecordState
    value: T | None
    error: Any
    created_at: datetime
    expires_at: datetime | None

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and datetime.now() > self.expires_at

    def to_record(self) -> IdempotencyRecord[T, Any]:
        return IdempotencyRecord(
            key=self.key,
            state=self.state,
            value=self.value,
            error=self.error,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )


class MemoryStore[T]:
    """
    In-process store. Single instance only; records do not survive a restart.
    """

    def __init__(self) -> None:
        self._records: dict[str, _StoredRecord[T]] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, key: str) -> Result[IdempotencyRecord[T, Any] | None, StoreError]:
        async with self._lock:
            record = self._records.get(key)
            if record is None:
                return Ok(None)
            if record.expired:
                del self._records[key]
                return Ok(None)
            return Ok(record.to_record())

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is not None and not existing.expired:
                return Ok(False)
            now = datetime.now()
            self._records[key] = _StoredRecord(
                key=key,
                state=RecordState.PENDING,
                value=None,
                error=None,
                created_at=now,
                expires_at=now + ttl if ttl else None,
            )
            return Ok(True)

    async def set_completed(self, key: str, value: T, ttl: timedelta | None) -> Result[None, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None:
                return Error(StoreError(f"No pending record for key: {key}"))
            existing.state = RecordState.COMPLETED
            existing.value = value
            existing.expires_at = datetime.now() + ttl if ttl else None
            return Ok(None)

    async def set_failed(self, key: str, error: Any, ttl: timedelta | None) -> Result[None, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None:
                return Error(StoreError(f"No pending record for key: {key}"))
            existing.state = RecordState.FAILED
            existing.error = error
            existing.expires_at = datetime.now() + ttl if ttl else None
            return Ok(None)

    async def delete(self, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._records.pop(key, None) is not None)


__all__ = (
    "StoreError",
    "Store",
    "StoreAny",
    "MemoryStore",
)
