from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from functools import partial
from types import TracebackType
from typing import Any, Callable

from pydantic import ValidationError

from orderdesk.application.ports.realtime_port import (
    RealtimeChannelPort,
    RealtimeTransportPort,
    Sleep,
    TransportFactory,
)
from orderdesk.application.services.single_flight import SingleFlight
from orderdesk.domain.entities.realtime import (
    JOIN_MESSAGES,
    LEAVE_MESSAGE,
    RealtimeEventType,
    RoomSubscription,
    RoomType,
    parse_room_type,
)
from orderdesk.domain.exceptions import RealtimeConnectionError, UnknownRoomTypeError
from orderdesk.infrastructure.realtime.schemas import parse_event


logger = logging.getLogger(__name__)


EventCallback = Callable[[Any], Any]
TokenProvider = Callable[[], str | None]


@dataclass(frozen=True)
class ConnectionSnapshot:
    connected: bool
    connecting: bool
    socket_id: str | None
    joined_rooms: tuple[str, ...]
    listener_counts: dict[str, int]
    reconnect_attempts: int


class RealtimeEventRouter(RealtimeChannelPort):
    """Owns the ``/orders`` socket: room membership and event fan-out.

    Joins requested before the socket is open wait on the connect signal and
    are sent once. Each room key is joined at most once until the transport
    disconnects, at which point every membership is forgotten.
    """

    def __init__(
        self,
        *,
        transport_factory: TransportFactory,
        token_provider: TokenProvider,
        max_reconnect_attempts: int = 5,
        reconnect_delay: float = 2.0,
        connect_timeout: float = 10.0,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_reconnect_attempts < 1:
            raise ValueError("max_reconnect_attempts must be at least 1.")
        self._transport_factory = transport_factory
        self._token_provider = token_provider
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._connect_timeout = connect_timeout
        self._sleep = sleep

        self._transport: RealtimeTransportPort | None = None
        self._ready: asyncio.Future[bool] | None = None
        self._open_task: asyncio.Task[None] | None = None
        self._closing: set[asyncio.Task[None]] = set()
        self._reconnect_attempts = 0
        self._joined: dict[str, RoomSubscription] = {}
        self._joins: SingleFlight[bool] = SingleFlight()
        self._listeners: dict[RealtimeEventType, dict[EventCallback, None]] = {
            event_type: {} for event_type in RealtimeEventType
        }

    @property
    def connected(self) -> bool:
        return self._transport is not None and self._transport.connected

    @property
    def joined_rooms(self) -> frozenset[str]:
        return frozenset(self._joined)

    def connect(self) -> None:
        if self._transport is not None:
            return
        loop = asyncio.get_running_loop()
        transport = self._transport_factory()
        transport.on("connect", partial(self._on_connect, transport))
        transport.on("disconnect", partial(self._on_disconnect, transport))
        transport.on("connect_error", partial(self._on_connect_error, transport))
        for event_type in RealtimeEventType:
            transport.on(event_type.value, partial(self._dispatch, event_type))

        self._transport = transport
        self._reconnect_attempts = 0
        self._ready = loop.create_future()
        self._open_task = loop.create_task(self._open(transport))
        logger.info("realtime_router: connecting")

    async def join_room(self, room_type: RoomType | str, target_id: str) -> bool:
        if not target_id:
            return False
        try:
            room = parse_room_type(room_type)
        except UnknownRoomTypeError:
            logger.warning("realtime_router: unknown_room_type room_type=%r", room_type)
            return False

        subscription = RoomSubscription(room_type=room, target_id=target_id)
        if subscription.key in self._joined:
            logger.info("realtime_router: already_joined room=%s", subscription.key)
            return True
        return await self._joins.run(partial(self._join, subscription), key=subscription.key)

    async def leave_room(self, room_type: RoomType | str, target_id: str) -> bool:
        try:
            room = parse_room_type(room_type)
        except UnknownRoomTypeError:
            logger.warning("realtime_router: unknown_room_type room_type=%r", room_type)
            return False

        key = RoomSubscription(room_type=room, target_id=target_id).key
        if key not in self._joined:
            return False
        del self._joined[key]
        transport = self._transport
        if transport is None or not transport.connected:
            return True
        try:
            await transport.emit(LEAVE_MESSAGE, key)
        except RealtimeConnectionError as exc:
            logger.warning("realtime_router: leave_failed room=%s reason=%s", key, exc)
        else:
            logger.info("realtime_router: left room=%s", key)
        return True

    def add_event_listener(self, event_type: RealtimeEventType | str, callback: EventCallback) -> None:
        self._listeners[RealtimeEventType(event_type)][callback] = None

    def remove_event_listener(self, event_type: RealtimeEventType | str, callback: EventCallback) -> None:
        self._listeners[RealtimeEventType(event_type)].pop(callback, None)

    async def disconnect(self) -> None:
        transport = self._transport
        self._transport = None
        self._joined.clear()
        for listeners in self._listeners.values():
            listeners.clear()
        self._fail_pending_joins()
        self._cancel_open_task()
        if self._closing:
            await asyncio.gather(*self._closing)
        if transport is None:
            return
        await self._close(transport)
        logger.info("realtime_router: disconnected")

    def snapshot(self) -> ConnectionSnapshot:
        transport = self._transport
        return ConnectionSnapshot(
            connected=self.connected,
            connecting=transport is not None and not transport.connected,
            socket_id=transport.sid if transport is not None else None,
            joined_rooms=tuple(self._joined),
            listener_counts={event_type.value: len(callbacks) for event_type, callbacks in self._listeners.items()},
            reconnect_attempts=self._reconnect_attempts,
        )

    async def __aenter__(self) -> RealtimeEventRouter:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    async def _join(self, subscription: RoomSubscription) -> bool:
        self.connect()
        transport = self._transport
        ready = self._ready
        if transport is None or ready is None:
            return False
        try:
            opened = await asyncio.wait_for(asyncio.shield(ready), timeout=self._connect_timeout)
        except asyncio.TimeoutError:
            logger.warning("realtime_router: join_timeout room=%s", subscription.key)
            return False

        if not opened or self._transport is not transport or not transport.connected:
            logger.warning("realtime_router: join_skipped room=%s reason=not_connected", subscription.key)
            return False
        try:
            await transport.emit(JOIN_MESSAGES[subscription.room_type], subscription.target_id)
        except RealtimeConnectionError as exc:
            logger.warning("realtime_router: join_failed room=%s reason=%s", subscription.key, exc)
            return False
        if self._transport is not transport:
            return False
        self._joined[subscription.key] = subscription
        logger.info("realtime_router: joined room=%s", subscription.key)
        return True

    async def _open(self, transport: RealtimeTransportPort) -> None:
        while self._transport is transport:
            try:
                await transport.open(token=self._token_provider())
            except RealtimeConnectionError as exc:
                logger.warning(
                    "realtime_router: open_failed attempt=%s reason=%s",
                    self._reconnect_attempts + 1,
                    exc,
                )
                if self._record_failure():
                    await self._close(transport)
                    return
                await self._sleep(self._reconnect_delay)
                continue
            if transport.connected and (self._ready is None or not self._ready.done()):
                await self._on_connect(transport)
            return

    async def _on_connect(self, transport: RealtimeTransportPort, *_args: Any) -> None:
        if self._transport is not transport:
            return
        self._reconnect_attempts = 0
        ready = self._ready
        if ready is None or ready.done():
            ready = asyncio.get_running_loop().create_future()
            self._ready = ready
        ready.set_result(True)
        logger.info("realtime_router: connected sid=%s", transport.sid)

    async def _on_disconnect(self, transport: RealtimeTransportPort, *_args: Any) -> None:
        if self._transport is not transport:
            return
        dropped = len(self._joined)
        self._joined.clear()
        if self._ready is None or self._ready.done():
            self._ready = asyncio.get_running_loop().create_future()
        logger.info("realtime_router: transport_disconnected rooms_dropped=%s", dropped)

    async def _on_connect_error(self, transport: RealtimeTransportPort, data: Any = None) -> None:
        if self._transport is not transport:
            return
        logger.warning(
            "realtime_router: connect_error attempt=%s reason=%s",
            self._reconnect_attempts + 1,
            data,
        )
        if self._record_failure():
            # handlers may run inside the client's reconnect task, which
            # closing would have to wait on
            task = asyncio.get_running_loop().create_task(self._close(transport))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

    def _record_failure(self) -> bool:
        self._reconnect_attempts += 1
        if self._reconnect_attempts < self._max_reconnect_attempts:
            return False
        logger.error(
            "realtime_router: giving_up attempts=%s",
            self._reconnect_attempts,
        )
        self._transport = None
        self._joined.clear()
        self._fail_pending_joins()
        return True

    async def _close(self, transport: RealtimeTransportPort) -> None:
        try:
            await transport.close()
        except RealtimeConnectionError as exc:
            logger.warning("realtime_router: close_failed reason=%s", exc)

    async def _dispatch(self, event_type: RealtimeEventType, data: Any = None) -> None:
        try:
            event = parse_event(event_type, data)
        except ValidationError as exc:
            logger.warning(
                "realtime_router: malformed_event event=%s errors=%s",
                event_type.value,
                exc.error_count(),
            )
            return

        for callback in list(self._listeners[event_type]):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "realtime_router: listener_failed event=%s callback=%r",
                    event_type.value,
                    callback,
                )

    def _fail_pending_joins(self) -> None:
        ready = self._ready
        self._ready = None
        if ready is not None and not ready.done():
            ready.set_result(False)

    def _cancel_open_task(self) -> None:
        task = self._open_task
        self._open_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
