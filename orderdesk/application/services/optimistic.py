from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Callable, Iterable

from orderdesk.application.ports.query_cache_port import QueryCachePort, QueryKey


logger = logging.getLogger(__name__)


_MISSING = object()


class OptimisticTransaction:
    """Snapshot cache entries, apply optimistic edits, then commit or roll back.

    Used as a context manager: leaving the block with an exception restores
    every snapshotted key (removing keys that did not exist before), leaving it
    normally keeps whatever was applied or committed.
    """

    def __init__(self, cache: QueryCachePort, keys: Iterable[QueryKey]):
        self._cache = cache
        self._keys = tuple(dict.fromkeys(keys))
        self._snapshot: dict[QueryKey, Any] = {}
        self._finished = False

    def __enter__(self) -> OptimisticTransaction:
        for key in self._keys:
            value = self._cache.get(key)
            self._snapshot[key] = _MISSING if value is None else value
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc_type is not None and not self._finished:
            self.rollback()
        self._finished = True
        return False

    def apply(self, key: QueryKey, update: Callable[[Any], Any]) -> None:
        if key not in self._snapshot:
            raise KeyError(f"Key {key!r} was not snapshotted by this transaction.")
        current = self._cache.get(key)
        if current is None:
            return
        self._cache.set(key, update(current))

    def commit(self, writes: dict[QueryKey, Any] | None = None) -> None:
        for key, value in (writes or {}).items():
            self._cache.set(key, value)
        self._finished = True

    def rollback(self) -> None:
        for key, value in self._snapshot.items():
            if value is _MISSING:
                self._cache.remove(key)
            else:
                self._cache.set(key, value)
        self._finished = True
        logger.info("optimistic: rolled_back keys=%s", len(self._snapshot))
