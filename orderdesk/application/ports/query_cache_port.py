from __future__ import annotations

from typing import Any, Protocol


QueryKey = tuple[Any, ...]


class QueryCachePort(Protocol):
    def get(self, key: QueryKey) -> Any | None:
        ...

    def set(self, key: QueryKey, value: Any) -> None:
        ...

    def remove(self, key: QueryKey) -> None:
        ...

    def keys(self, prefix: QueryKey = ()) -> list[QueryKey]:
        ...

    def invalidate(self, prefix: QueryKey) -> int:
        ...
