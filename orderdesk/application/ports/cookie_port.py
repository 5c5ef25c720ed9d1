from __future__ import annotations

from typing import Protocol


class CookieJarPort(Protocol):
    def get_cookie(self, name: str) -> str | None:
        ...

    def expire_cookie(self, name: str, *, path: str) -> None:
        ...
