"""
SQLAlchemy store — idempotency records kept in any model carrying IdempotencyMixin.

    class ConfirmationLedger(Base, IdempotencyMixin):
        __tablename__ = "payment_confirmations"
        id: Mapped[int] = mapped_column(primary_key=True)

    store = SQLAlchemyStore(session_factory, model=ConfirmationLedger)

Values and errors are stored as text; pair the store with a codec on the
executor when the operation returns structured values.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol, cast, runtime_checkable

from kungfu import Result, Ok, Error
from sqlalchemy import DateTime, String, Text, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from emporium.idempotency._store import StoreError
from emporium.idempotency._types import IdempotencyRecord, RecordState

# ═══════════════════════════════════════════════════════════════════════════════
# Mixin
# ═══════════════════════════════════════════════════════════════════════════════


class IdempotencyMixin:
    """Columns for deduplication: a unique key, a status, the outcome and an expiry."""

    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    idempotency_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    idempotency_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    idempotency_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    idempotency_created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    idempotency_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class IdempotencyStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@runtime_checkable
class IdempotentModel(Protocol):
    idempotency_key: str
    idempotency_status: str
    idempotency_value: str | None
    idempotency_error: str | None
    idempotency_created_at: datetime
    idempotency_expires_at: datetime | None


_STATES = {
    IdempotencyStatus.PENDING: RecordState.PENDING,
    IdempotencyStatus.COMPLETED: RecordState.COMPLETED,
    IdempotencyStatus.FAILED: RecordState.FAILED,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStore[M]:
    """
    Claims keys by inserting a row; the unique index on idempotency_key makes
    the claim atomic across processes sharing the database.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type[M],
        to_pending: Callable[[str], M] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._model = model
        self._to_pending = to_pending or (lambda key: model(idempotency_key=key))  # type: ignore[call-arg]

    async def _find(self, session: AsyncSession, key: str) -> IdempotentModel | None:
        stmt = select(self._model).where(self._model.idempotency_key == key)  # type: ignore[attr-defined]
        row = (await session.execute(stmt)).scalar_one_or_none()
        return cast(IdempotentModel | None, row)

    @staticmethod
    def _expired(row: IdempotentModel) -> bool:
        return row.idempotency_expires_at is not None and datetime.now() > row.idempotency_expires_at

    async def get(self, key: str) -> Result[IdempotencyRecord[str, str] | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await self._find(session, key)
                if row is None or self._expired(row):
                    return Ok(None)
                return Ok(self._to_record(row))
        except Exception as e:
            return Error(StoreError(f"Failed to get: {e}", e))

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                existing = await self._find(session, key)
                if existing is not None:
                    if not self._expired(existing):
                        return Ok(False)
                    await session.delete(existing)
                    await session.flush()

                row = cast(IdempotentModel, self._to_pending(key))
                row.idempotency_status = IdempotencyStatus.PENDING
                row.idempotency_created_at = datetime.now()
                row.idempotency_expires_at = datetime.now() + ttl if ttl else None
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    return Ok(False)
                return Ok(True)
        except Exception as e:
            return Error(StoreError(f"Failed to set pending: {e}", e))

    async def _finish(
        self,
        key: str,
        status: str,
        ttl: timedelta | None,
        value: str | None = None,
        error: str | None = None,
    ) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await self._find(session, key)
                if row is None:
                    return Error(StoreError(f"Record not found: {key}"))
                row.idempotency_status = status
                row.idempotency_value = value
                row.idempotency_error = error
                row.idempotency_expires_at = datetime.now() + ttl if ttl else None
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to mark {status}: {e}", e))

    async def set_completed(self, key: str, value: str, ttl: timedelta | None) -> Result[None, StoreError]:
        return await self._finish(key, IdempotencyStatus.COMPLETED, ttl, value=value)

    async def set_failed(self, key: str, error: Any, ttl: timedelta | None) -> Result[None, StoreError]:
        return await self._finish(key, IdempotencyStatus.FAILED, ttl, error=str(error))

    async def delete(self, key: str) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await self._find(session, key)
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(StoreError(f"Failed to delete: {e}", e))

    def _to_record(self, row: IdempotentModel) -> IdempotencyRecord[str, str]:
        return IdempotencyRecord(
            key=row.idempotency_key,
            state=_STATES.get(row.idempotency_status, RecordState.PENDING),
            value=row.idempotency_value,
            error=row.idempotency_error,
            created_at=row.idempotency_created_at,
            expires_at=row.idempotency_expires_at,
        )


__all__ = (
    "IdempotencyMixin",
    "IdempotencyStatus",
    "IdempotentModel",
    "SQLAlchemyStore",
)
