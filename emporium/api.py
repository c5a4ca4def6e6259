"""
HTTP surface — payment confirmation webhook and order cancellation.

    app = create_app()          # uvicorn emporium.api:create_app --factory

Endpoints are wire endpoints over the checkout handlers; the FastAPI app is
compiled from them.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

import structlog
from fastapi import FastAPI
from kungfu import Result, Ok, Error
from pydantic import BaseModel, ConfigDict
from sqlalchemy import Integer
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from emporium import idempotency as I
from emporium import wire
from emporium.checkout import (
    NOTIFICATION_PATH,
    CancellationFailed,
    ConfirmationOutcome,
    ConfirmationReason,
    ConfirmationProcessor,
    ConfirmationRejected,
    OrderCommitCoordinator,
)
from emporium.commerce import HttpCommerceBackend, PendingOrder, commerce_client
from emporium.config import Settings
from emporium.log import configure_logging
from emporium.payments import SESSION_PATH, HttpPaymentGateway, gateway_client
from emporium.wire.contrib import fastapi as wire_fastapi

logger = structlog.get_logger(__name__)

CANCEL_PATH = "/api/orders/cancel"

_REJECTION_STATUS: dict[ConfirmationReason, int] = {
    ConfirmationReason.MISSING_FIELDS: 400,
    ConfirmationReason.BAD_SIGNATURE: 400,
    ConfirmationReason.AMOUNT_MISMATCH: 400,
    ConfirmationReason.UNKNOWN_ORDER: 404,
    ConfirmationReason.IN_PROGRESS: 409,
    ConfirmationReason.UPDATE_FAILED: 502,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Confirmation
# ═══════════════════════════════════════════════════════════════════════════════


class ConfirmationIn(BaseModel):
    model_config = ConfigDict(frozen=True)

    kr_answer: str | None = None
    kr_hash: str | None = None
    kr_transaction_id: str | None = None
    kr_amount: Decimal | str | None = None
    kr_status: str | None = None
    kr_order_id: str | None = None

    def to_domain(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ConfirmationOut(BaseModel):
    ok: bool
    order_id: str | None = None
    order_status: str | None = None
    applied: bool = False
    duplicate: bool = False
    error: str | None = None
    message: str | None = None

    @classmethod
    def from_domain(cls, dom: Result[ConfirmationOutcome, ConfirmationRejected]) -> ConfirmationOut:
        match dom:
            case Ok(outcome):
                return cls(
                    ok=True,
                    order_id=outcome.order_id,
                    order_status=outcome.order_status.wire if outcome.order_status else None,
                    applied=outcome.applied,
                    duplicate=outcome.duplicate,
                )
            case Error(rejected):
                return cls(ok=False, error=rejected.reason.value, message=rejected.message)

    def status_code(self) -> int:
        if self.ok:
            return 200
        return _REJECTION_STATUS.get(ConfirmationReason(self.error), 400)


# ═══════════════════════════════════════════════════════════════════════════════
# Cancellation
# ═══════════════════════════════════════════════════════════════════════════════


class CancelOrderIn(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str

    def to_domain(self) -> str:
        return self.order_id


class CancelOrderOut(BaseModel):
    ok: bool
    order_id: str
    status: str | None = None
    message: str | None = None

    @classmethod
    def from_domain(cls, dom: Result[PendingOrder, CancellationFailed]) -> CancelOrderOut:
        match dom:
            case Ok(order):
                return cls(ok=True, order_id=order.id, status=order.status.wire)
            case Error(failed):
                return cls(ok=False, order_id=failed.order_id, message=failed.message)

    def status_code(self) -> int:
        return 200 if self.ok else 502


# ═══════════════════════════════════════════════════════════════════════════════
# Application
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class ConfirmationLedger(Base, I.IdempotencyMixin):
    __tablename__ = "payment_confirmations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


def build_application(
    processor: ConfirmationProcessor,
    coordinator: OrderCommitCoordinator,
) -> wire.Application:
    confirmation = wire.endpoint(processor.process).expose(
        wire.HTTPRouteTrigger("POST", NOTIFICATION_PATH, summary="Payment gateway notification"),
        wire.RequestResponseCodec(ConfirmationIn, ConfirmationOut),
    )
    cancellation = wire.endpoint(coordinator.cancel_order).expose(
        wire.HTTPRouteTrigger("POST", CANCEL_PATH, summary="Cancel a pending order"),
        wire.RequestResponseCodec(CancelOrderIn, CancelOrderOut),
    )
    return wire.Application("emporium").mount(confirmation, cancellation)


def create_app(settings: Settings | None = None) -> FastAPI:
    configure_logging()
    settings = settings or Settings.load()

    commerce_http = commerce_client(settings)
    gateway_http = gateway_client(settings)
    engine = create_async_engine(settings.database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    coordinator = OrderCommitCoordinator(
        HttpCommerceBackend(commerce_http),
        HttpPaymentGateway.from_settings(gateway_http, settings),
        settings,
    )
    processor = ConfirmationProcessor(
        coordinator,
        HttpPaymentGateway.from_settings(gateway_http, settings),
        settings,
        store=I.SQLAlchemyStore(session_factory, model=ConfirmationLedger),
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("api started", commerce_url=settings.commerce_url, session_path=SESSION_PATH)
        try:
            yield
        finally:
            await commerce_http.aclose()
            await gateway_http.aclose()
            await engine.dispose()

    return wire_fastapi.from_application(build_application(processor, coordinator), lifespan=lifespan)


__all__ = (
    "CANCEL_PATH",
    "ConfirmationIn",
    "ConfirmationOut",
    "CancelOrderIn",
    "CancelOrderOut",
    "ConfirmationLedger",
    "build_application",
    "create_app",
)
