from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest

from emporium.api import CANCEL_PATH, build_application, create_app
from emporium.checkout import NOTIFICATION_PATH, ConfirmationProcessor, OrderCommitCoordinator
from emporium.commerce import InMemoryCommerceBackend, OrderStatus
from emporium.config import Settings
from emporium.payments import FakePaymentGateway
from emporium.wire.contrib import fastapi as wire_fastapi

from support import committed, notification


@pytest.fixture()
async def client(
    coordinator: OrderCommitCoordinator,
    gateway: FakePaymentGateway,
    settings: Settings,
) -> AsyncIterator[httpx.AsyncClient]:
    await committed(coordinator)
    processor = ConfirmationProcessor(coordinator, gateway, settings)
    app = wire_fastapi.from_application(build_application(processor, coordinator))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://api.test") as client:
        yield client


async def test_confirmation_is_applied(client: httpx.AsyncClient, backend: InMemoryCommerceBackend) -> None:
    response = await client.post(NOTIFICATION_PATH, json=notification())

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "order_id": "1001",
        "order_status": "processing",
        "applied": True,
        "duplicate": False,
        "error": None,
        "message": None,
    }
    assert backend.orders["1001"].status is OrderStatus.CONFIRMED


async def test_numeric_amount_is_accepted(client: httpx.AsyncClient, backend: InMemoryCommerceBackend) -> None:
    body: dict[str, object] = {**notification(), "kr_amount": 110.00}

    response = await client.post(NOTIFICATION_PATH, json=body)

    assert response.status_code == 200
    assert response.json()["applied"] is True
    assert backend.orders["1001"].status is OrderStatus.CONFIRMED


async def test_repeated_confirmation_is_flagged(client: httpx.AsyncClient) -> None:
    await client.post(NOTIFICATION_PATH, json=notification())
    response = await client.post(NOTIFICATION_PATH, json=notification())

    assert response.status_code == 200
    assert response.json()["duplicate"] is True


async def test_bad_signature_is_400(client: httpx.AsyncClient, backend: InMemoryCommerceBackend) -> None:
    response = await client.post(NOTIFICATION_PATH, json=notification(kr_hash="0" * 64))

    assert response.status_code == 400
    assert response.json()["error"] == "bad_signature"
    assert backend.orders["1001"].status is OrderStatus.PENDING


async def test_missing_fields_is_400(client: httpx.AsyncClient) -> None:
    response = await client.post(NOTIFICATION_PATH, json={"kr_status": "CAPTURED"})

    assert response.status_code == 400
    assert response.json()["error"] == "missing_fields"


async def test_unknown_order_is_404(client: httpx.AsyncClient) -> None:
    response = await client.post(NOTIFICATION_PATH, json=notification(kr_order_id="WC-42"))

    assert response.status_code == 404


async def test_cancel_endpoint(client: httpx.AsyncClient, backend: InMemoryCommerceBackend) -> None:
    response = await client.post(CANCEL_PATH, json={"order_id": "1001"})

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert backend.orders["1001"].status is OrderStatus.CANCELLED

    again = await client.post(CANCEL_PATH, json={"order_id": "1001"})
    assert again.status_code == 200


async def test_cancel_failure_is_502(client: httpx.AsyncClient, backend: InMemoryCommerceBackend) -> None:
    backend.fail_on.add("cancel_order")

    response = await client.post(CANCEL_PATH, json={"order_id": "1001"})

    assert response.status_code == 502
    assert response.json()["ok"] is False


async def test_cancel_requires_order_id(client: httpx.AsyncClient) -> None:
    response = await client.post(CANCEL_PATH, json={})

    assert response.status_code == 422


async def test_create_app_wires_routes() -> None:
    app = create_app(Settings())
    paths = {route.path for route in app.routes}

    assert NOTIFICATION_PATH in paths
    assert CANCEL_PATH in paths
    async with app.router.lifespan_context(app):
        pass
