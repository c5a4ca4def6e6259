"""
Idempotency — at-most-once execution per key.

    from emporium import idempotency as I

    executor = I.idempotent(op).key(key_fn).store(I.MemoryStore()).build()
"""

from emporium.idempotency._types import (
    RecordState,
    IdempotencyRecord,
    IdempotencyResult,
    IdempotencyErrorKind,
    IdempotencyError,
)
from emporium.idempotency._store import StoreError, Store, StoreAny, MemoryStore
from emporium.idempotency._policy import OnPending, WAIT, FAIL, Policy
from emporium.idempotency._builder import Idempotent, IdempotentExecutor, idempotent
from emporium.idempotency._sqlalchemy import (
    IdempotencyMixin,
    IdempotencyStatus,
    IdempotentModel,
    SQLAlchemyStore,
)

__all__ = (
    "RecordState",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyErrorKind",
    "IdempotencyError",
    "StoreError",
    "Store",
    "StoreAny",
    "MemoryStore",
    "OnPending",
    "WAIT",
    "FAIL",
    "Policy",
    "Idempotent",
    "IdempotentExecutor",
    "idempotent",
    "IdempotencyMixin",
    "IdempotencyStatus",
    "IdempotentModel",
    "SQLAlchemyStore",
)
