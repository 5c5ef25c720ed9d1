from __future__ import annotations

import asyncio
import contextlib
import logging

from orderdesk.application.ports.realtime_port import Sleep
from orderdesk.application.services.session_manager import SessionManager
from orderdesk.domain.entities.session import SessionState


logger = logging.getLogger(__name__)


class TokenRefreshScheduler:
    """Keeps the in-memory access token fresh in the background.

    Refreshes once on start when a session exists but no token is held yet,
    then every ``interval_seconds`` for as long as there is something to refresh.
    """

    def __init__(
        self,
        *,
        session_manager: SessionManager,
        interval_seconds: float = 600,
        sleep: Sleep = asyncio.sleep,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self._session = session_manager
        self._interval = interval_seconds
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        state = self._session.state
        if _has_session(state) and not state.access_token:
            await self._tick("initial")
        while True:
            await self._sleep(self._interval)
            if not _has_session(self._session.state):
                continue
            await self._tick("periodic")

    async def _tick(self, reason: str) -> None:
        try:
            refreshed = await self._session.refresh_session()
        except Exception:
            logger.exception("token_refresh_scheduler: refresh_crashed reason=%s", reason)
            return
        logger.debug("token_refresh_scheduler: refreshed reason=%s ok=%s", reason, refreshed)


def _has_session(state: SessionState) -> bool:
    return state.user is not None or state.session_id is not None
