"""
Idempotency types — records kept per deduplication key.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto

# ═══════════════════════════════════════════════════════════════════════════════
# Record State
# ═══════════════════════════════════════════════════════════════════════════════


class RecordState(Enum):
    """
    State of an idempotency record.

        PENDING → COMPLETED
                → FAILED
                → (expired/deleted)
    """

    PENDING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass(frozen=True, slots=True)
class IdempotencyRecord[T, E]:
    """A stored record. `value` is set only when COMPLETED, `error` only when FAILED."""

    key: str
    state: RecordState
    value: T | None
    error: E | None
    created_at: datetime
    expires_at: datetime | None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now() > self.expires_at


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class IdempotencyResult[T]:
    """`from_cache` is True when the value was recorded by an earlier run."""

    value: T
    from_cache: bool
    key: str


class IdempotencyErrorKind(Enum):
    CONFLICT = auto()  # same key still pending
    TIMEOUT = auto()  # waited too long for a pending record
    STORE_ERROR = auto()
    EXECUTION = auto()  # wrapped operation failed


@dataclass(frozen=True, slots=True)
class IdempotencyError[E]:
    kind: IdempotencyErrorKind
    message: str
    original_error: E | None = None


__all__ = (
    "RecordState",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyErrorKind",
    "IdempotencyError",
)
