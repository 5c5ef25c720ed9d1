from __future__ import annotations

import asyncio
import logging
from typing import Any

import socketio
from socketio.exceptions import ConnectionError as SocketIoConnectionError, SocketIOError

from orderdesk.application.ports.realtime_port import RealtimeTransportPort, TransportHandler
from orderdesk.domain.exceptions import RealtimeConnectionError


logger = logging.getLogger(__name__)


class SocketIoTransport(RealtimeTransportPort):
    """One python-socketio client bound to a single namespace, websocket only.

    ``connect_error`` raised while ``open()`` is still running is reported by
    the raised exception alone; only errors from background reconnects reach
    the registered handler.
    """

    def __init__(
        self,
        *,
        url: str,
        namespace: str = "/orders",
        reconnection_attempts: int = 5,
        reconnection_delay: float = 2.0,
        wait_timeout: float = 10.0,
        client: socketio.AsyncClient | None = None,
    ):
        self._url = url
        self._namespace = namespace
        self._wait_timeout = wait_timeout
        self._client = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            reconnection_delay_max=reconnection_delay,
            randomization_factor=0,
            logger=False,
            engineio_logger=False,
        )
        self._opening = False
        self._connect_error_handler: TransportHandler | None = None
        self._client.on("connect_error", self._forward_connect_error, namespace=namespace)

    @property
    def connected(self) -> bool:
        # namespace membership is set before the connect handler runs;
        # client.connected only after connect() returns
        return self.sid is not None

    @property
    def sid(self) -> str | None:
        return self._client.get_sid(self._namespace)

    def on(self, event: str, handler: TransportHandler) -> None:
        if event == "connect_error":
            self._connect_error_handler = handler
            return
        self._client.on(event, handler, namespace=self._namespace)

    async def open(self, *, token: str | None) -> None:
        headers: dict[str, str] = {}
        auth: dict[str, str] | None = None
        if token:
            headers["Authorization"] = f"Bearer {token}"
            auth = {"token": token}

        self._opening = True
        try:
            await self._client.connect(
                self._url,
                headers=headers,
                auth=auth,
                transports=["websocket"],
                namespaces=[self._namespace],
                wait_timeout=self._wait_timeout,
            )
        except SocketIoConnectionError as exc:
            raise RealtimeConnectionError(str(exc) or "Realtime connection failed.") from exc
        finally:
            self._opening = False
        logger.info("socketio_transport: opened namespace=%s sid=%s", self._namespace, self.sid)

    async def emit(self, event: str, data: Any) -> None:
        try:
            await self._client.emit(event, data, namespace=self._namespace)
        except SocketIOError as exc:
            raise RealtimeConnectionError(str(exc) or f"Could not emit {event}.") from exc

    async def close(self) -> None:
        reconnect_task = self._client._reconnect_task
        try:
            if reconnect_task is not None and reconnect_task is asyncio.current_task():
                # shutdown() would await the task it is running in
                self._client._reconnect_abort.set()
            else:
                await self._client.shutdown()
        except SocketIOError as exc:
            raise RealtimeConnectionError(str(exc) or "Realtime close failed.") from exc
        logger.info("socketio_transport: closed namespace=%s", self._namespace)

    async def _forward_connect_error(self, data: Any = None) -> None:
        if self._opening or self._connect_error_handler is None:
            return
        result = self._connect_error_handler(data)
        if hasattr(result, "__await__"):
            await result
