from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol


TransportHandler = Callable[..., Any]


class RealtimeChannelPort(Protocol):
    """What the session layer needs from the realtime router."""

    async def disconnect(self) -> None:
        ...


class RealtimeTransportPort(Protocol):
    """One socket connection scoped to a single namespace."""

    @property
    def connected(self) -> bool:
        ...

    @property
    def sid(self) -> str | None:
        ...

    def on(self, event: str, handler: TransportHandler) -> None:
        ...

    async def open(self, *, token: str | None) -> None:
        ...

    async def emit(self, event: str, data: Any) -> None:
        ...

    async def close(self) -> None:
        ...


TransportFactory = Callable[[], RealtimeTransportPort]
Sleep = Callable[[float], Awaitable[None]]
