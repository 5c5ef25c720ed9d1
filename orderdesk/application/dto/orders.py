from __future__ import annotations

from dataclasses import dataclass

from orderdesk.domain.entities.order import OrderStatus


@dataclass(frozen=True)
class UpdateOrderStatusInput:
    order_id: str
    status: OrderStatus


@dataclass(frozen=True)
class MarkOrderPaymentInput:
    order_id: str
    is_paid: bool
    payment_method: str | None = None
    notes: str | None = None
