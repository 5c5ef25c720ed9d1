from __future__ import annotations

from typing import Protocol

from orderdesk.domain.entities.order import Order, OrderStatus


class OrderApiPort(Protocol):
    async def get_order(self, *, order_id: str) -> Order:
        ...

    async def update_status(self, *, order_id: str, status: OrderStatus) -> Order:
        ...

    async def mark_paid(self, *, order_id: str, payment_method: str | None, notes: str | None) -> Order:
        ...

    async def mark_unpaid(self, *, order_id: str, notes: str | None) -> Order:
        ...
