from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from orderdesk.application.ports.storage_port import DurableStoragePort


logger = logging.getLogger(__name__)


class JsonFileStorage(DurableStoragePort):
    """String key/value store persisted as one JSON object on disk (mode 600)."""

    def __init__(self, path: Path):
        self._path = path
        self._items: dict[str, str] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._flush(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._flush(items)

    def keys(self) -> list[str]:
        return list(self._load())

    def _load(self) -> dict[str, str]:
        if self._items is not None:
            return self._items
        self._items = {}
        if not self._path.exists():
            return self._items
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("json_file_storage: unreadable path=%s reason=%s", self._path, exc)
            return self._items
        if isinstance(raw, dict):
            self._items = {str(key): value for key, value in raw.items() if isinstance(value, str)}
        return self._items

    def _flush(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.unlink(missing_ok=True)
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(json.dumps(items, indent=2, sort_keys=True))
        tmp_path.replace(self._path)
        logger.debug("json_file_storage: flushed path=%s keys=%s", self._path, len(items))


class MemoryStorage(DurableStoragePort):
    def __init__(self, items: dict[str, str] | None = None):
        self._items = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)
