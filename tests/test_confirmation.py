from __future__ import annotations

import pytest
from kungfu import Ok, Error
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from emporium import idempotency as I
from emporium.api import Base, ConfirmationLedger
from emporium.checkout import (
    ConfirmationProcessor,
    ConfirmationReason,
    OrderCommitCoordinator,
    parse_notification,
)
from emporium.commerce import InMemoryCommerceBackend, OrderStatus
from emporium.config import Settings
from emporium.payments import FakePaymentGateway, sign

from support import ANSWER, committed, notification


@pytest.fixture()
async def processor(
    coordinator: OrderCommitCoordinator,
    gateway: FakePaymentGateway,
    settings: Settings,
) -> ConfirmationProcessor:
    await committed(coordinator)
    return ConfirmationProcessor(coordinator, gateway, settings)


def test_parse_notification_requires_fields() -> None:
    match parse_notification({"kr_answer": ANSWER}):
        case Error(rejected):
            assert rejected.reason is ConfirmationReason.MISSING_FIELDS
            assert "kr_hash" in rejected.message
        case Ok(_):
            raise AssertionError("expected rejection")


def test_parse_notification_rejects_bad_amount() -> None:
    match parse_notification(notification(kr_amount="ciento diez")):
        case Error(rejected):
            assert rejected.reason is ConfirmationReason.MISSING_FIELDS
        case Ok(_):
            raise AssertionError("expected rejection")


async def test_captured_payment_confirms_order(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    match await processor.process(notification()):
        case Ok(outcome):
            assert outcome.order_id == "1001"
            assert outcome.applied is True
            assert outcome.duplicate is False
            assert outcome.order_status is OrderStatus.CONFIRMED
        case Error(rejected):
            raise AssertionError(rejected.message)

    order = backend.orders["1001"]
    assert order.status is OrderStatus.CONFIRMED
    assert order.transaction_id == "tx-1"


async def test_duplicate_notification_is_applied_once(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    await processor.process(notification())

    match await processor.process(notification()):
        case Ok(outcome):
            assert outcome.duplicate is True
            assert outcome.order_status is OrderStatus.CONFIRMED
        case Error(rejected):
            raise AssertionError(rejected.message)
    assert backend.calls.count(("update_status", "1001")) == 1


async def test_bad_signature_changes_nothing(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    match await processor.process(notification(kr_hash=sign(ANSWER, "attacker"))):
        case Error(rejected):
            assert rejected.reason is ConfirmationReason.BAD_SIGNATURE
        case Ok(_):
            raise AssertionError("expected rejection")
    assert backend.orders["1001"].status is OrderStatus.PENDING


async def test_amount_mismatch_is_rejected_and_not_recorded(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    match await processor.process(notification(kr_amount="1.10")):
        case Error(rejected):
            assert rejected.reason is ConfirmationReason.AMOUNT_MISMATCH
        case Ok(_):
            raise AssertionError("expected rejection")
    assert backend.orders["1001"].status is OrderStatus.PENDING

    match await processor.process(notification()):
        case Ok(outcome):
            assert outcome.applied is True
        case Error(rejected):
            raise AssertionError(rejected.message)


async def test_authorised_then_captured(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    match await processor.process(notification(kr_status="AUTHORISED")):
        case Ok(outcome):
            assert outcome.order_status is OrderStatus.ON_HOLD
        case Error(rejected):
            raise AssertionError(rejected.message)

    match await processor.process(notification(kr_status="CAPTURED")):
        case Ok(outcome):
            assert outcome.duplicate is False
            assert outcome.order_status is OrderStatus.CONFIRMED
        case Error(rejected):
            raise AssertionError(rejected.message)
    assert backend.orders["1001"].status is OrderStatus.CONFIRMED


async def test_refused_payment_is_acknowledged_only(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    match await processor.process(notification(kr_status="REFUSED")):
        case Ok(outcome):
            assert outcome.applied is False
            assert outcome.order_status is None
        case Error(rejected):
            raise AssertionError(rejected.message)
    assert backend.orders["1001"].status is OrderStatus.PENDING
    assert ("update_status", "1001") not in backend.calls


async def test_unknown_order(processor: ConfirmationProcessor) -> None:
    match await processor.process(notification(kr_order_id="WC-9999")):
        case Error(rejected):
            assert rejected.reason is ConfirmationReason.UNKNOWN_ORDER
        case Ok(_):
            raise AssertionError("expected rejection")


async def test_missing_order_reference(processor: ConfirmationProcessor) -> None:
    form = notification()
    del form["kr_order_id"]

    match await processor.process(form):
        case Error(rejected):
            assert rejected.reason is ConfirmationReason.UNKNOWN_ORDER
        case Ok(_):
            raise AssertionError("expected rejection")


async def test_plain_order_id_is_accepted(processor: ConfirmationProcessor) -> None:
    match await processor.process(notification(kr_order_id="1001")):
        case Ok(outcome):
            assert outcome.order_id == "1001"
        case Error(rejected):
            raise AssertionError(rejected.message)


async def test_already_confirmed_order_is_left_alone(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    await backend.update_status("1001", OrderStatus.CONFIRMED, transaction_id="tx-0")

    match await processor.process(notification()):
        case Ok(outcome):
            assert outcome.applied is False
            assert outcome.order_status is OrderStatus.CONFIRMED
        case Error(rejected):
            raise AssertionError(rejected.message)
    assert backend.orders["1001"].transaction_id == "tx-0"


async def test_update_failure_is_reported(
    processor: ConfirmationProcessor,
    backend: InMemoryCommerceBackend,
) -> None:
    backend.fail_on.add("update_status")

    match await processor.process(notification()):
        case Error(rejected):
            assert rejected.reason is ConfirmationReason.UPDATE_FAILED
        case Ok(_):
            raise AssertionError("expected rejection")


async def test_duplicates_survive_in_sql_ledger(
    coordinator: OrderCommitCoordinator,
    gateway: FakePaymentGateway,
    settings: Settings,
    backend: InMemoryCommerceBackend,
) -> None:
    await committed(coordinator)
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    store = I.SQLAlchemyStore(async_sessionmaker(engine, expire_on_commit=False), model=ConfirmationLedger)

    try:
        first = ConfirmationProcessor(coordinator, gateway, settings, store=store)
        await first.process(notification())
        # a fresh processor sharing the database still sees the first outcome
        second = ConfirmationProcessor(coordinator, gateway, settings, store=store)
        match await second.process(notification()):
            case Ok(outcome):
                assert outcome.duplicate is True
                assert outcome.applied is True
                assert outcome.order_status is OrderStatus.CONFIRMED
            case Error(rejected):
                raise AssertionError(rejected.message)
    finally:
        await engine.dispose()

    assert backend.calls.count(("update_status", "1001")) == 1
