from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType

import httpx

from orderdesk.application.ports.navigator_port import NavigatorPort
from orderdesk.application.ports.notifier_port import NotifierPort
from orderdesk.application.ports.realtime_port import TransportFactory
from orderdesk.application.ports.storage_port import DurableStoragePort
from orderdesk.application.services.session_manager import SessionManager
from orderdesk.application.services.token_refresh_scheduler import TokenRefreshScheduler
from orderdesk.application.use_cases.mark_order_payment import MarkOrderPaymentUseCase
from orderdesk.application.use_cases.update_order_status import UpdateOrderStatusUseCase
from orderdesk.infrastructure.cache.memory_query_cache import InMemoryQueryCache
from orderdesk.infrastructure.http.api_client import ApiClient
from orderdesk.infrastructure.http.auth_api import HttpAuthApi
from orderdesk.infrastructure.http.order_api import HttpOrderApi
from orderdesk.infrastructure.realtime.event_router import RealtimeEventRouter
from orderdesk.infrastructure.realtime.socketio_transport import SocketIoTransport
from orderdesk.infrastructure.storage.json_file_storage import JsonFileStorage
from orderdesk.infrastructure.ui.navigator import InMemoryNavigator
from orderdesk.infrastructure.ui.notifier import LoggingNotifier
from orderdesk.shared.config import Settings, get_settings


logger = logging.getLogger(__name__)


@dataclass
class OrderDeskClient:
    settings: Settings
    api_client: ApiClient
    auth_api: HttpAuthApi
    order_api: HttpOrderApi
    storage: DurableStoragePort
    navigator: NavigatorPort
    notifier: NotifierPort
    session: SessionManager
    realtime: RealtimeEventRouter
    scheduler: TokenRefreshScheduler
    cache: InMemoryQueryCache
    update_order_status: UpdateOrderStatusUseCase
    mark_order_payment: MarkOrderPaymentUseCase

    async def start(self) -> bool:
        authenticated = await self.session.initialize()
        self.scheduler.start()
        return authenticated

    async def aclose(self) -> None:
        await self.scheduler.stop()
        await self.realtime.disconnect()
        await self.api_client.aclose()
        logger.info("orderdesk_client: closed")

    async def __aenter__(self) -> OrderDeskClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def build_client(
    settings: Settings | None = None,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
    transport_factory: TransportFactory | None = None,
    storage: DurableStoragePort | None = None,
    navigator: NavigatorPort | None = None,
    notifier: NotifierPort | None = None,
) -> OrderDeskClient:
    settings = settings or get_settings()
    storage = storage or JsonFileStorage(settings.storage_path)
    navigator = navigator or InMemoryNavigator()
    notifier = notifier or LoggingNotifier()

    api_client = ApiClient(
        base_url=settings.api_base_url,
        api_prefix=settings.api_prefix,
        timeout_seconds=settings.request_timeout_seconds,
        transport=http_transport,
    )
    auth_api = HttpAuthApi(client=api_client)
    order_api = HttpOrderApi(client=api_client)

    session = SessionManager(
        auth_api=auth_api,
        storage=storage,
        cookies=api_client,
        navigator=navigator,
        notifier=notifier,
        login_path=settings.login_path,
        suspended_path=settings.suspended_path,
        refresh_cookie_path=settings.auth_cookie_path,
    )
    api_client.set_token_provider(lambda: session.access_token)

    if transport_factory is None:

        def transport_factory() -> SocketIoTransport:
            return SocketIoTransport(
                url=settings.api_base_url,
                namespace=settings.realtime_namespace,
                reconnection_attempts=settings.realtime_max_reconnect_attempts,
                reconnection_delay=settings.realtime_reconnect_delay_seconds,
                wait_timeout=settings.realtime_connect_timeout_seconds,
            )

    realtime = RealtimeEventRouter(
        transport_factory=transport_factory,
        token_provider=lambda: session.access_token,
        max_reconnect_attempts=settings.realtime_max_reconnect_attempts,
        reconnect_delay=settings.realtime_reconnect_delay_seconds,
        connect_timeout=settings.realtime_connect_timeout_seconds,
    )
    session.attach_realtime(realtime)

    cache = InMemoryQueryCache()
    return OrderDeskClient(
        settings=settings,
        api_client=api_client,
        auth_api=auth_api,
        order_api=order_api,
        storage=storage,
        navigator=navigator,
        notifier=notifier,
        session=session,
        realtime=realtime,
        scheduler=TokenRefreshScheduler(
            session_manager=session,
            interval_seconds=settings.session_refresh_interval_seconds,
        ),
        cache=cache,
        update_order_status=UpdateOrderStatusUseCase(order_api=order_api, cache=cache, notifier=notifier),
        mark_order_payment=MarkOrderPaymentUseCase(order_api=order_api, cache=cache, notifier=notifier),
    )
