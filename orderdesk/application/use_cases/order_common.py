from __future__ import annotations

from typing import Any, Callable

from orderdesk.application.ports.query_cache_port import QueryCachePort, QueryKey
from orderdesk.application.services.optimistic import OptimisticTransaction
from orderdesk.application.services.query_keys import order_detail_key, order_lists_key
from orderdesk.domain.entities.order import Order


OrderPatch = Callable[[Order], Order]


def order_cache_keys(cache: QueryCachePort, order_id: str) -> list[QueryKey]:
    return [order_detail_key(order_id), *cache.keys(order_lists_key())]


def patch_in_list(orders: Any, order_id: str, patch: OrderPatch) -> Any:
    if not isinstance(orders, list):
        return orders
    return [patch(order) if isinstance(order, Order) and order.id == order_id else order for order in orders]


def apply_everywhere(
    tx: OptimisticTransaction,
    keys: list[QueryKey],
    order_id: str,
    patch: OrderPatch,
) -> None:
    detail_key, *list_keys = keys
    tx.apply(detail_key, patch)
    for key in list_keys:
        tx.apply(key, lambda orders: patch_in_list(orders, order_id, patch))


def committed_writes(cache: QueryCachePort, keys: list[QueryKey], updated: Order) -> dict[QueryKey, Any]:
    detail_key, *list_keys = keys
    writes: dict[QueryKey, Any] = {detail_key: updated}
    for key in list_keys:
        current = cache.get(key)
        if current is not None:
            writes[key] = patch_in_list(current, updated.id, lambda _order: updated)
    return writes
