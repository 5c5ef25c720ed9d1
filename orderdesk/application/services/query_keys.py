from __future__ import annotations

from typing import Any

from orderdesk.application.ports.query_cache_port import QueryKey


ORDERS: QueryKey = ("orders",)


def _frozen(filters: dict[str, Any] | None) -> tuple[tuple[str, Any], ...]:
    return tuple(sorted((filters or {}).items()))


def order_lists_key() -> QueryKey:
    return (*ORDERS, "list")


def order_list_key(filters: dict[str, Any] | None = None) -> QueryKey:
    return (*order_lists_key(), _frozen(filters))


def venue_orders_key(venue_id: str, status: str | None = None) -> QueryKey:
    return (*order_lists_key(), "venue", venue_id, *((status,) if status else ()))


def organization_orders_key(organization_id: str, status: str | None = None) -> QueryKey:
    return (*order_lists_key(), "organization", organization_id, *((status,) if status else ()))


def order_detail_key(order_id: str) -> QueryKey:
    return (*ORDERS, "detail", order_id)
