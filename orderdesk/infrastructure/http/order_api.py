from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from orderdesk.application.ports.order_api_port import OrderApiPort
from orderdesk.domain.entities.order import Order, OrderStatus
from orderdesk.domain.exceptions import ApiError, SessionRejectedError
from orderdesk.infrastructure.http.api_client import MALFORMED_RESPONSE_STATUS, ApiClient
from orderdesk.infrastructure.http.auth_api import map_auth_error
from orderdesk.infrastructure.http.mappers import to_order
from orderdesk.infrastructure.http.schemas import MarkPaidRequest, OrderPayload


logger = logging.getLogger(__name__)


class HttpOrderApi(OrderApiPort):
    def __init__(self, *, client: ApiClient):
        self._client = client

    async def get_order(self, *, order_id: str) -> Order:
        return await self._call("GET", f"/orders/{order_id}")

    async def update_status(self, *, order_id: str, status: OrderStatus) -> Order:
        return await self._call("PATCH", f"/orders/{order_id}/status", {"status": OrderStatus(status).value})

    async def mark_paid(self, *, order_id: str, payment_method: str | None, notes: str | None) -> Order:
        body = MarkPaidRequest(payment_method=payment_method, notes=notes)
        return await self._call(
            "PATCH",
            f"/orders/{order_id}/payment/mark-paid",
            body.model_dump(by_alias=True, exclude_none=True),
        )

    async def mark_unpaid(self, *, order_id: str, notes: str | None) -> Order:
        body = {"notes": notes} if notes else {}
        return await self._call("PATCH", f"/orders/{order_id}/payment/mark-unpaid", body)

    async def _call(self, method: str, endpoint: str, body: dict[str, Any] | None = None) -> Order:
        try:
            payload = await self._client.request(method, endpoint, json=body)
        except ApiError as exc:
            raise map_auth_error(exc, rejected=SessionRejectedError) from exc
        try:
            order = to_order(OrderPayload.model_validate(payload))
        except (ValidationError, ValueError) as exc:
            logger.warning("order_api: malformed_order endpoint=%s reason=%s", endpoint, exc)
            raise ApiError(MALFORMED_RESPONSE_STATUS, "Unexpected order response from server.") from exc
        logger.info("order_api: %s endpoint=%s order_id=%s status=%s", method.lower(), endpoint, order.id, order.status.value)
        return order
