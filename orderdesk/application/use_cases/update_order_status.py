from __future__ import annotations

import logging
from dataclasses import replace

from orderdesk.application.dto.orders import UpdateOrderStatusInput
from orderdesk.application.ports.notifier_port import NotifierPort
from orderdesk.application.ports.order_api_port import OrderApiPort
from orderdesk.application.ports.query_cache_port import QueryCachePort
from orderdesk.application.services.optimistic import OptimisticTransaction
from orderdesk.application.use_cases.order_common import apply_everywhere, committed_writes, order_cache_keys
from orderdesk.domain.entities.order import Order, OrderStatus
from orderdesk.domain.exceptions import ApiError, AuthenticationError, OrderMutationError


logger = logging.getLogger(__name__)


class UpdateOrderStatusUseCase:
    def __init__(self, *, order_api: OrderApiPort, cache: QueryCachePort, notifier: NotifierPort):
        self._order_api = order_api
        self._cache = cache
        self._notifier = notifier

    async def execute(self, command: UpdateOrderStatusInput) -> Order:
        status = OrderStatus(command.status)
        keys = order_cache_keys(self._cache, command.order_id)

        with OptimisticTransaction(self._cache, keys) as tx:
            apply_everywhere(tx, keys, command.order_id, lambda order: replace(order, status=status))
            try:
                updated = await self._order_api.update_status(order_id=command.order_id, status=status)
            except (ApiError, AuthenticationError) as exc:
                logger.warning(
                    "update_order_status: failed order_id=%s status=%s reason=%s",
                    command.order_id,
                    status.value,
                    exc,
                )
                self._notifier.error(str(exc) or "Failed to update order status")
                raise OrderMutationError("Failed to update order status.") from exc
            tx.commit(committed_writes(self._cache, keys, updated))

        self._notifier.success(f"Order status updated to {updated.status.value}")
        return updated
