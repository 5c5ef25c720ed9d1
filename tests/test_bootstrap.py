from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from conftest import FakeTransport
from orderdesk.application.dto.orders import UpdateOrderStatusInput
from orderdesk.application.services.query_keys import order_detail_key
from orderdesk.bootstrap import build_client
from orderdesk.domain.entities.order import OrderStatus
from orderdesk.domain.entities.realtime import RoomType
from orderdesk.infrastructure.storage.json_file_storage import MemoryStorage
from orderdesk.infrastructure.ui.navigator import InMemoryNavigator
from orderdesk.shared.config import Settings
from test_http_auth_api import build_backend


def _settings() -> Settings:
    return Settings(
        api_base_url="http://backend.test",
        api_prefix="/api/v1",
        request_timeout_seconds=5,
        realtime_namespace="/orders",
        realtime_max_reconnect_attempts=5,
        realtime_reconnect_delay_seconds=0,
        realtime_connect_timeout_seconds=1,
        session_refresh_interval_seconds=600,
        storage_path=Path("/nonexistent/storage.json"),
        login_path="/login",
        suspended_path="/account-suspended",
        log_level="INFO",
    )


@pytest.mark.asyncio
async def test_login_realtime_and_logout_through_composed_client():
    backend = build_backend()
    transports: list[FakeTransport] = []

    def transport_factory() -> FakeTransport:
        transports.append(FakeTransport())
        return transports[-1]

    storage = MemoryStorage()
    client = build_client(
        _settings(),
        http_transport=httpx.ASGITransport(app=backend),
        transport_factory=transport_factory,
        storage=storage,
        navigator=InMemoryNavigator(initial_path="/dashboard"),
    )

    async with client:
        outcome = await client.session.login("ana@example.com", "secret")
        assert outcome.user.id == "user-1"
        assert client.api_client.get_cookie("sessionId") == "sess-1"

        assert await client.realtime.join_room(RoomType.VENUE, "venue-1") is True
        assert transports[0].tokens == ["access-1"]

        order = await client.update_order_status.execute(
            UpdateOrderStatusInput(order_id="order-1", status=OrderStatus.READY)
        )
        assert client.cache.get(order_detail_key("order-1")) == order

        await client.session.logout()

        assert ("logout", "Bearer access-1") in backend.state.requests
        assert client.api_client.get_cookie("sessionId") is None
        assert client.api_client.get_cookie("refreshToken") is None
        assert storage.keys() == []
        assert transports[0].closed is True
        assert client.realtime.joined_rooms == frozenset()


@pytest.mark.asyncio
async def test_start_without_session_stays_unauthenticated():
    client = build_client(
        _settings(),
        http_transport=httpx.ASGITransport(app=build_backend()),
        transport_factory=FakeTransport,
        storage=MemoryStorage(),
    )

    async with client:
        assert await client.start() is False
        assert client.scheduler.running is True
        assert client.session.state.is_loading is False

    assert client.scheduler.running is False
