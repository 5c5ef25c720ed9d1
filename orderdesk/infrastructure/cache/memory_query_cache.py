from __future__ import annotations

import logging
from typing import Any

from orderdesk.application.ports.query_cache_port import QueryCachePort, QueryKey


logger = logging.getLogger(__name__)


class InMemoryQueryCache(QueryCachePort):
    """Query results keyed by tuples; prefixes address whole families of keys."""

    def __init__(self):
        self._entries: dict[QueryKey, Any] = {}

    def get(self, key: QueryKey) -> Any | None:
        return self._entries.get(tuple(key))

    def set(self, key: QueryKey, value: Any) -> None:
        self._entries[tuple(key)] = value

    def remove(self, key: QueryKey) -> None:
        self._entries.pop(tuple(key), None)

    def keys(self, prefix: QueryKey = ()) -> list[QueryKey]:
        prefix = tuple(prefix)
        return [key for key in self._entries if key[: len(prefix)] == prefix]

    def invalidate(self, prefix: QueryKey) -> int:
        stale = self.keys(prefix)
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info("query_cache: invalidated prefix=%s count=%s", prefix, len(stale))
        return len(stale)
