from __future__ import annotations

from typing import Protocol


class NavigatorPort(Protocol):
    def current_path(self) -> str:
        ...

    def navigate(self, path: str) -> None:
        ...
