from __future__ import annotations

import logging
from dataclasses import replace

from orderdesk.application.dto.orders import MarkOrderPaymentInput
from orderdesk.application.ports.notifier_port import NotifierPort
from orderdesk.application.ports.order_api_port import OrderApiPort
from orderdesk.application.ports.query_cache_port import QueryCachePort
from orderdesk.application.services.optimistic import OptimisticTransaction
from orderdesk.application.use_cases.order_common import apply_everywhere, committed_writes, order_cache_keys
from orderdesk.domain.entities.order import Order, OrderPaymentStatus
from orderdesk.domain.exceptions import ApiError, AuthenticationError, OrderMutationError


logger = logging.getLogger(__name__)


class MarkOrderPaymentUseCase:
    def __init__(self, *, order_api: OrderApiPort, cache: QueryCachePort, notifier: NotifierPort):
        self._order_api = order_api
        self._cache = cache
        self._notifier = notifier

    async def execute(self, command: MarkOrderPaymentInput) -> Order:
        payment_status = OrderPaymentStatus.PAID if command.is_paid else OrderPaymentStatus.UNPAID
        keys = order_cache_keys(self._cache, command.order_id)

        with OptimisticTransaction(self._cache, keys) as tx:
            apply_everywhere(
                tx,
                keys,
                command.order_id,
                lambda order: replace(order, payment_status=payment_status),
            )
            try:
                if command.is_paid:
                    updated = await self._order_api.mark_paid(
                        order_id=command.order_id,
                        payment_method=command.payment_method,
                        notes=command.notes,
                    )
                else:
                    updated = await self._order_api.mark_unpaid(
                        order_id=command.order_id,
                        notes=command.notes,
                    )
            except (ApiError, AuthenticationError) as exc:
                logger.warning(
                    "mark_order_payment: failed order_id=%s is_paid=%s reason=%s",
                    command.order_id,
                    command.is_paid,
                    exc,
                )
                self._notifier.error(str(exc) or "Failed to update payment status")
                raise OrderMutationError("Failed to update payment status.") from exc
            tx.commit(committed_writes(self._cache, keys, updated))

        label = "paid" if command.is_paid else "unpaid"
        self._notifier.success(f"Order marked as {label}")
        return updated
