from __future__ import annotations

import logging

from orderdesk.application.ports.notifier_port import NotifierPort


logger = logging.getLogger(__name__)


class LoggingNotifier(NotifierPort):
    """User-facing notices routed to the ``orderdesk.notices`` logger."""

    def __init__(self, *, logger_name: str = "orderdesk.notices"):
        self._logger = logging.getLogger(logger_name)
        self.history: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def _emit(self, level: str, message: str) -> None:
        self.history.append((level, message))
        log_level = logging.ERROR if level == "error" else logging.INFO
        self._logger.log(log_level, "notice: level=%s message=%r", level, message)
