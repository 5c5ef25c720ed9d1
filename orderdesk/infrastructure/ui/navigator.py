from __future__ import annotations

import logging

from orderdesk.application.ports.navigator_port import NavigatorPort
from orderdesk.domain.services.routes import normalize_path


logger = logging.getLogger(__name__)


class InMemoryNavigator(NavigatorPort):
    def __init__(self, *, initial_path: str = "/"):
        self._path = normalize_path(initial_path)
        self.history: list[str] = [self._path]

    def current_path(self) -> str:
        return self._path

    def navigate(self, path: str) -> None:
        path = normalize_path(path)
        if path == self._path:
            return
        logger.info("navigator: navigate from=%s to=%s", self._path, path)
        self._path = path
        self.history.append(path)
