from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from orderdesk.application.dto.orders import MarkOrderPaymentInput, UpdateOrderStatusInput
from orderdesk.application.services.optimistic import OptimisticTransaction
from orderdesk.application.services.query_keys import (
    order_detail_key,
    order_list_key,
    venue_orders_key,
)
from orderdesk.application.use_cases.mark_order_payment import MarkOrderPaymentUseCase
from orderdesk.application.use_cases.update_order_status import UpdateOrderStatusUseCase
from orderdesk.domain.entities.order import Order, OrderPaymentStatus, OrderStatus
from orderdesk.domain.exceptions import ApiError, OrderMutationError
from orderdesk.infrastructure.cache.memory_query_cache import InMemoryQueryCache
from orderdesk.infrastructure.ui.notifier import LoggingNotifier


def _order(order_id: str = "order-1", **overrides) -> Order:
    values = {
        "id": order_id,
        "status": OrderStatus.PENDING,
        "payment_status": OrderPaymentStatus.UNPAID,
        "total_amount": Decimal("42.50"),
        "updated_at": "2024-05-01T12:00:00Z",
        "venue_id": "venue-1",
    }
    values.update(overrides)
    return Order(**values)


class FakeOrderApi:
    def __init__(self):
        self.error: Exception | None = None
        self.seen_in_cache: list[object] = []
        self.cache: InMemoryQueryCache | None = None
        self.calls: list[tuple[str, dict]] = []

    async def get_order(self, *, order_id: str) -> Order:
        return _order(order_id)

    async def update_status(self, *, order_id: str, status: OrderStatus) -> Order:
        return self._answer("update_status", order_id=order_id, status=status)

    async def mark_paid(self, *, order_id: str, payment_method: str | None, notes: str | None) -> Order:
        return self._answer("mark_paid", order_id=order_id, payment_method=payment_method, notes=notes)

    async def mark_unpaid(self, *, order_id: str, notes: str | None) -> Order:
        return self._answer("mark_unpaid", order_id=order_id, notes=notes)

    def _answer(self, name: str, **kwargs) -> Order:
        self.calls.append((name, kwargs))
        if self.cache is not None:
            self.seen_in_cache.append(self.cache.get(order_detail_key(kwargs["order_id"])))
        if self.error is not None:
            raise self.error
        order = _order(kwargs["order_id"], updated_at="2024-05-01T12:30:00Z")
        if "status" in kwargs:
            order = replace(order, status=kwargs["status"])
        if name == "mark_paid":
            order = replace(order, payment_status=OrderPaymentStatus.PAID)
        return order


@pytest.fixture
def cache() -> InMemoryQueryCache:
    cache = InMemoryQueryCache()
    cache.set(order_detail_key("order-1"), _order())
    cache.set(venue_orders_key("venue-1"), [_order(), _order("order-2")])
    cache.set(order_list_key({"status": "PENDING"}), [_order("order-3")])
    return cache


@pytest.fixture
def order_api(cache) -> FakeOrderApi:
    api = FakeOrderApi()
    api.cache = cache
    return api


@pytest.mark.asyncio
async def test_status_update_is_optimistic_then_commits_server_order(cache, order_api):
    use_case = UpdateOrderStatusUseCase(order_api=order_api, cache=cache, notifier=LoggingNotifier())

    updated = await use_case.execute(UpdateOrderStatusInput(order_id="order-1", status=OrderStatus.READY))

    assert order_api.seen_in_cache[0].status is OrderStatus.READY
    assert cache.get(order_detail_key("order-1")) == updated
    assert updated.updated_at == "2024-05-01T12:30:00Z"
    venue_list = cache.get(venue_orders_key("venue-1"))
    assert venue_list[0] == updated
    assert venue_list[1].status is OrderStatus.PENDING
    assert cache.get(order_list_key({"status": "PENDING"})) == [_order("order-3")]


@pytest.mark.asyncio
async def test_status_update_failure_rolls_back_every_key(cache, order_api):
    notifier = LoggingNotifier()
    before = {key: cache.get(key) for key in cache.keys()}
    order_api.error = ApiError(409, "Invalid status transition")
    use_case = UpdateOrderStatusUseCase(order_api=order_api, cache=cache, notifier=notifier)

    with pytest.raises(OrderMutationError) as excinfo:
        await use_case.execute(UpdateOrderStatusInput(order_id="order-1", status=OrderStatus.SERVED))

    assert isinstance(excinfo.value.__cause__, ApiError)
    assert order_api.seen_in_cache[0].status is OrderStatus.SERVED
    assert {key: cache.get(key) for key in cache.keys()} == before
    assert notifier.history[-1] == ("error", "Invalid status transition")


@pytest.mark.asyncio
async def test_invalid_status_is_rejected_before_any_call(cache, order_api):
    use_case = UpdateOrderStatusUseCase(order_api=order_api, cache=cache, notifier=LoggingNotifier())

    with pytest.raises(ValueError):
        await use_case.execute(UpdateOrderStatusInput(order_id="order-1", status="TELEPORTED"))
    assert order_api.calls == []


@pytest.mark.asyncio
async def test_mark_paid_and_unpaid(cache, order_api):
    use_case = MarkOrderPaymentUseCase(order_api=order_api, cache=cache, notifier=LoggingNotifier())

    paid = await use_case.execute(MarkOrderPaymentInput(order_id="order-1", is_paid=True, payment_method="CASH"))
    assert paid.payment_status is OrderPaymentStatus.PAID
    assert order_api.seen_in_cache[0].payment_status is OrderPaymentStatus.PAID
    assert order_api.calls[0] == ("mark_paid", {"order_id": "order-1", "payment_method": "CASH", "notes": None})

    unpaid = await use_case.execute(MarkOrderPaymentInput(order_id="order-1", is_paid=False, notes="refund"))
    assert unpaid.payment_status is OrderPaymentStatus.UNPAID
    assert cache.get(order_detail_key("order-1")).payment_status is OrderPaymentStatus.UNPAID


@pytest.mark.asyncio
async def test_mark_paid_failure_restores_payment_status(cache, order_api):
    order_api.error = ApiError(0, "Network error occurred")
    use_case = MarkOrderPaymentUseCase(order_api=order_api, cache=cache, notifier=LoggingNotifier())

    with pytest.raises(OrderMutationError):
        await use_case.execute(MarkOrderPaymentInput(order_id="order-1", is_paid=True))

    assert cache.get(order_detail_key("order-1")).payment_status is OrderPaymentStatus.UNPAID


@pytest.mark.asyncio
async def test_mutation_of_uncached_order_writes_server_result_only(order_api):
    cache = InMemoryQueryCache()
    use_case = UpdateOrderStatusUseCase(order_api=order_api, cache=cache, notifier=LoggingNotifier())

    updated = await use_case.execute(UpdateOrderStatusInput(order_id="order-9", status=OrderStatus.CONFIRMED))

    assert cache.keys() == [order_detail_key("order-9")]
    assert cache.get(order_detail_key("order-9")) == updated


def test_exception_after_commit_keeps_committed_values():
    cache = InMemoryQueryCache()
    key = order_detail_key("order-5")

    with pytest.raises(RuntimeError):
        with OptimisticTransaction(cache, [key]) as tx:
            tx.commit({key: _order("order-5")})
            cache.set(key, _order("order-5", status=OrderStatus.READY))
            raise RuntimeError("late failure")

    assert cache.get(key) is not None


def test_transaction_rolls_back_when_not_committed():
    cache = InMemoryQueryCache()
    key = order_detail_key("order-5")

    with pytest.raises(RuntimeError):
        with OptimisticTransaction(cache, [key]):
            cache.set(key, _order("order-5"))
            raise RuntimeError("failure")

    assert cache.get(key) is None
    assert cache.keys() == []


def test_transaction_apply_requires_snapshotted_key():
    cache = InMemoryQueryCache()
    with OptimisticTransaction(cache, [order_detail_key("a")]) as tx:
        with pytest.raises(KeyError):
            tx.apply(order_detail_key("b"), lambda value: value)


def test_cache_invalidate_by_prefix(cache):
    assert cache.invalidate(("orders", "list")) == 2
    assert cache.keys() == [order_detail_key("order-1")]
