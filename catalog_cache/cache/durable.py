"""Durable key-value tier backing the in-memory cache."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class DurableStoreError(Exception):
    pass


class DurableStoreFull(DurableStoreError):
    def __init__(self, required_bytes: int, max_bytes: int) -> None:
        self.required_bytes = required_bytes
        self.max_bytes = max_bytes
        super().__init__(f"Durable store capacity exceeded ({required_bytes} > {max_bytes} bytes)")


class DurableStore(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


@dataclass(frozen=True)
class DurableResult:
    ok: bool
    value: str | None = None
    error: Exception | None = None


def _size_of(items: dict[str, str]) -> int:
    return sum(len(key) + len(value) for key, value in items.items())


class MemoryDurableStore:
    """Bounded string store with local-storage semantics; rejects writes past `max_bytes`."""

    def __init__(self, max_bytes: int | None = None) -> None:
        self.max_bytes = max_bytes
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        candidate = dict(self._items)
        candidate[key] = value
        required = _size_of(candidate)
        if self.max_bytes is not None and required > self.max_bytes:
            raise DurableStoreFull(required, self.max_bytes)
        self._items = candidate

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileDurableStore(MemoryDurableStore):
    """Memory store mirrored to a single JSON file so entries survive restarts."""

    def __init__(self, path: str | Path, max_bytes: int | None = None) -> None:
        super().__init__(max_bytes=max_bytes)
        self.path = Path(path)
        self._items = self._load()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            LOGGER.warning("durable file unreadable, starting empty: path=%s error=%s", self.path, error)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(key): value for key, value in raw.items() if isinstance(value, str)}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._items, ensure_ascii=True), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def set_item(self, key: str, value: str) -> None:
        super().set_item(key, value)
        self._flush()

    def remove_item(self, key: str) -> None:
        if key in self._items:
            super().remove_item(key)
            self._flush()


def safe_get(store: DurableStore, key: str) -> DurableResult:
    try:
        return DurableResult(ok=True, value=store.get_item(key))
    except (DurableStoreError, OSError, ValueError) as error:
        return DurableResult(ok=False, error=error)


def safe_set(store: DurableStore, key: str, value: str) -> DurableResult:
    try:
        store.set_item(key, value)
    except (DurableStoreError, OSError, ValueError) as error:
        return DurableResult(ok=False, error=error)
    return DurableResult(ok=True)


def safe_remove(store: DurableStore, key: str) -> DurableResult:
    try:
        store.remove_item(key)
    except (DurableStoreError, OSError, ValueError) as error:
        return DurableResult(ok=False, error=error)
    return DurableResult(ok=True)


def safe_keys(store: DurableStore) -> list[str]:
    try:
        return list(store.keys())
    except (DurableStoreError, OSError, ValueError) as error:
        LOGGER.warning("durable key listing failed: error=%s", error)
        return []
