from __future__ import annotations

from typing import Protocol


class NotifierPort(Protocol):
    def info(self, message: str) -> None:
        ...

    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...
