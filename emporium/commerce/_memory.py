"""
In-memory commerce backend for local runs and tests.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from decimal import Decimal

from emporium.commerce._types import (
    OrderNotFound,
    OrderPayload,
    OrderStateConflict,
    OrderStatus,
    PendingOrder,
)


@dataclass(slots=True)
class InMemoryCommerceBackend:
    """
    Orders kept in a dict.

    `calls` records (operation, order_id) in call order. Set `fail_on` to an
    operation name to make that operation raise `failure`.
    """

    orders: dict[str, PendingOrder] = field(default_factory=dict)
    payloads: dict[str, OrderPayload] = field(default_factory=dict)
    calls: list[tuple[str, str | None]] = field(default_factory=list)
    next_id: int = 1001
    latency: float = 0.0
    fail_on: set[str] = field(default_factory=set)
    failure: Exception = field(default_factory=lambda: ConnectionError("commerce backend unavailable"))

    async def _enter(self, operation: str, order_id: str | None) -> None:
        self.calls.append((operation, order_id))
        if self.latency:
            await asyncio.sleep(self.latency)
        if operation in self.fail_on:
            raise self.failure

    def _get(self, order_id: str) -> PendingOrder:
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def create_order(self, payload: OrderPayload) -> PendingOrder:
        await self._enter("create_order", None)
        order_id = str(self.next_id)
        self.next_id += 1
        order = PendingOrder(
            id=order_id,
            status=payload.status,
            total=Decimal(payload.total),
            line_items=payload.line_items,
            shipping_line=payload.shipping_line,
            coupon_lines=payload.coupon_lines,
        )
        self.orders[order_id] = order
        self.payloads[order_id] = payload
        return order

    async def get_order(self, order_id: str) -> PendingOrder:
        await self._enter("get_order", order_id)
        return self._get(order_id)

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        *,
        transaction_id: str | None = None,
    ) -> PendingOrder:
        await self._enter("update_status", order_id)
        order = self._get(order_id)
        if order.status is OrderStatus.CANCELLED and status is not OrderStatus.CANCELLED:
            raise OrderStateConflict(order_id, order.status, status)
        updated = replace(order, status=status, transaction_id=transaction_id or order.transaction_id)
        self.orders[order_id] = updated
        return updated

    async def cancel_order(self, order_id: str) -> PendingOrder:
        await self._enter("cancel_order", order_id)
        order = self._get(order_id)
        if order.status is OrderStatus.CANCELLED:
            return order
        if order.status is OrderStatus.CONFIRMED:
            raise OrderStateConflict(order_id, order.status, OrderStatus.CANCELLED)
        cancelled = replace(order, status=OrderStatus.CANCELLED)
        self.orders[order_id] = cancelled
        return cancelled


__all__ = ("InMemoryCommerceBackend",)
