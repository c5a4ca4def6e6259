"""
Idempotency builder — run an operation at most once per key.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from emporium.idempotency._policy import OnPending, Policy
from emporium.idempotency._store import MemoryStore, StoreAny, StoreError
from emporium.idempotency._types import (
    IdempotencyError,
    IdempotencyErrorKind,
    IdempotencyResult,
    RecordState,
)

logger = structlog.get_logger(__name__)

type KeyFn[K] = Callable[[K], str]


def _identity(value: Any) -> Any:
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# Idempotent Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Idempotent[K, T, E]:
    _operation: Callable[[K], LazyCoroResult[T, E]]
    _key_fn: KeyFn[K] | None = None
    _store: StoreAny | None = None
    _policy: Policy = Policy()
    _encode: Callable[[T], Any] = _identity
    _decode: Callable[[Any], T] = _identity

    def key(self, fn: KeyFn[K]) -> Idempotent[K, T, E]:
        return replace(self, _key_fn=fn)

    def store(self, s: StoreAny) -> Idempotent[K, T, E]:
        return replace(self, _store=s)

    def policy(self, p: Policy) -> Idempotent[K, T, E]:
        return replace(self, _policy=p)

    def codec(self, encode: Callable[[T], Any], decode: Callable[[Any], T]) -> Idempotent[K, T, E]:
        """Convert values to and from what the store can hold."""
        return replace(self, _encode=encode, _decode=decode)

    def build(self) -> IdempotentExecutor[K, T, E]:
        if self._key_fn is None:
            raise ValueError("key() is required")
        return IdempotentExecutor(
            operation=self._operation,
            key_fn=self._key_fn,
            store=self._store if self._store is not None else MemoryStore(),
            policy=self._policy,
            encode=self._encode,
            decode=self._decode,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Idempotent Executor
# ═══════════════════════════════════════════════════════════════════════════════


def _store_failed[E](err: StoreError) -> Error[IdempotencyError[E]]:
    return Error(IdempotencyError(IdempotencyErrorKind.STORE_ERROR, err.message))


@dataclass(slots=True, frozen=True)
class IdempotentExecutor[K, T, E]:
    """
    Claim the key, run, record the outcome.

    A completed record short-circuits to its value with from_cache=True.
    A pending record is waited on or reported as CONFLICT per policy.
    """

    operation: Callable[[K], LazyCoroResult[T, E]]
    key_fn: KeyFn[K]
    store: StoreAny
    policy: Policy
    encode: Callable[[T], Any] = _identity
    decode: Callable[[Any], T] = _identity

    def run(self, input_val: K) -> LazyCoroResult[IdempotencyResult[T], IdempotencyError[E]]:
        key = self.key_fn(input_val)

        async def execute() -> Result[IdempotencyResult[T], IdempotencyError[E]]:
            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.policy.pending_wait_timeout.total_seconds()

            while True:
                match await self.store.set_pending(key, self.policy.result_ttl):
                    case Error(err):
                        return _store_failed(err)
                    case Ok(True):
                        return await self._execute(key, input_val)
                    case Ok(False):
                        pass

                match await self.store.get(key):
                    case Error(err):
                        return _store_failed(err)
                    case Ok(None):
                        # expired or released between claim and read
                        continue
                    case Ok(record):
                        pass

                if record.state is RecordState.COMPLETED:
                    logger.debug("idempotency hit", key=key)
                    return Ok(IdempotencyResult(self.decode(record.value), from_cache=True, key=key))
                if record.state is RecordState.FAILED:
                    return Error(IdempotencyError(
                        IdempotencyErrorKind.EXECUTION,
                        f"Operation for {key} previously failed",
                        original_error=record.error,
                    ))

                if self.policy.conflict_strategy is OnPending.FAIL:
                    return Error(IdempotencyError(IdempotencyErrorKind.CONFLICT, f"{key} is in progress"))
                if loop.time() >= deadline:
                    return Error(IdempotencyError(IdempotencyErrorKind.TIMEOUT, f"Timed out waiting for {key}"))
                await asyncio.sleep(self.policy.poll_interval.total_seconds())

        return LazyCoroResult(execute)

    async def _execute(self, key: str, input_val: K) -> Result[IdempotencyResult[T], IdempotencyError[E]]:
        match await self.operation(input_val):
            case Ok(value):
                match await self.store.set_completed(key, self.encode(value), self.policy.result_ttl):
                    case Error(err):
                        logger.warning("idempotency record not completed", key=key, error=err.message)
                return Ok(IdempotencyResult(value, from_cache=False, key=key))
            case Error(e):
                if self.policy.persist_failed:
                    stored = await self.store.set_failed(key, e, self.policy.failed_result_ttl or self.policy.result_ttl)
                else:
                    stored = await self.store.delete(key)
                match stored:
                    case Error(err):
                        logger.warning("idempotency record not released", key=key, error=err.message)
                return Error(IdempotencyError(IdempotencyErrorKind.EXECUTION, str(e), original_error=e))

    async def invalidate(self, input_val: K) -> bool:
        match await self.store.delete(self.key_fn(input_val)):
            case Ok(deleted):
                return deleted
            case _:
                return False


def idempotent[K, T, E](operation: Callable[[K], LazyCoroResult[T, E]]) -> Idempotent[K, T, E]:
    """
    Wrap an operation so it runs at most once per key.

        executor = (
            I.idempotent(confirm)
            .key(lambda n: f"confirmation:{n.transaction_id}")
            .store(I.MemoryStore())
            .build()
        )
        result = await executor.run(notification)
    """
    return Idempotent(_operation=operation)


__all__ = (
    "Idempotent",
    "IdempotentExecutor",
    "idempotent",
)
