"""Two-tier TTL cache: in-memory entries backed by a durable key-value store."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from catalog_cache.cache.categories import DEFAULT_TTL_SECONDS, CacheCategory
from catalog_cache.cache.durable import (
    DurableStore,
    MemoryDurableStore,
    safe_get,
    safe_keys,
    safe_remove,
    safe_set,
)
from catalog_cache.cache.keys import Identifier, category_of, make_key
from catalog_cache.cache.signals import UpstreamSignal

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)
DEFAULT_NAMESPACE = "catalogCache_"
STATS_SUFFIX = "stats"


@dataclass
class CacheEntry(Generic[T]):
    data: T
    created_at: float
    hit_count: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {"data": self.data, "timestamp": int(self.created_at * 1000), "hits": self.hit_count},
            ensure_ascii=True,
        )

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry[Any]":
        parsed = json.loads(raw)
        if not isinstance(parsed, dict) or "data" not in parsed or "timestamp" not in parsed:
            raise ValueError("Malformed cache entry.")
        timestamp = parsed["timestamp"]
        hits = parsed.get("hits", 0)
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("Malformed cache entry timestamp.")
        if isinstance(hits, bool) or not isinstance(hits, int):
            raise ValueError("Malformed cache entry hit count.")
        return cls(data=parsed["data"], created_at=timestamp / 1000.0, hit_count=hits)


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    entry_count: int
    approximate_size_bytes: int

    @property
    def size_label(self) -> str:
        if self.approximate_size_bytes > 1024 * 1024:
            return f"{self.approximate_size_bytes / 1024 / 1024:.2f} MB"
        return f"{self.approximate_size_bytes / 1024:.2f} KB"


@dataclass(frozen=True)
class EntryInfo:
    key: str
    category: CacheCategory | None
    age_seconds: float
    hits: int


class CacheStore:
    """Bounded TTL cache shared by every fetch orchestrator of an application.

    The in-memory tier is authoritative. The durable tier is written best-effort
    and consulted only on an in-memory miss; any failure there downgrades the
    store to memory-only behaviour for that entry without raising. Hit/miss
    counters are written on each sweep tick, on `reset_stats()` and on `dispose()`.
    """

    def __init__(
        self,
        ttl_table: Mapping[CacheCategory, float] | None = None,
        max_size: int = 50,
        durable: DurableStore | None = None,
        *,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: float = 60.0,
        namespace: str = DEFAULT_NAMESPACE,
        set_eviction_threshold: float = 0.9,
        set_eviction_fraction: float = 0.2,
        sweep_threshold: float = 0.85,
        sweep_fraction: float = 0.15,
        durable_cleanup_fraction: float = 0.3,
    ) -> None:
        self.ttl_table: dict[CacheCategory, float] = dict(DEFAULT_TTL_SECONDS)
        self.ttl_table.update(ttl_table or {})
        self.max_size = max(1, max_size)
        self.durable: DurableStore = durable if durable is not None else MemoryDurableStore()
        self.clock = clock
        self.sweep_interval_seconds = max(0.01, sweep_interval_seconds)
        self.namespace = namespace
        self.set_eviction_threshold = set_eviction_threshold
        self.set_eviction_fraction = set_eviction_fraction
        self.sweep_threshold = sweep_threshold
        self.sweep_fraction = sweep_fraction
        self.durable_cleanup_fraction = durable_cleanup_fraction
        self._memory: dict[str, CacheEntry[Any]] = {}
        self._hits = 0
        self._misses = 0
        self._stats_dirty = False
        self._sweep_task: asyncio.Task[None] | None = None
        self._load_stats()
        self._hydrate_all()

    @property
    def _stats_key(self) -> str:
        return f"{self.namespace}{STATS_SUFFIX}"

    def _durable_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _namespaced_keys(self) -> list[str]:
        return [
            durable_key[len(self.namespace):]
            for durable_key in safe_keys(self.durable)
            if durable_key.startswith(self.namespace) and durable_key != self._stats_key
        ]

    def _load_stats(self) -> None:
        result = safe_get(self.durable, self._stats_key)
        if not result.ok:
            LOGGER.warning("cache stats unreadable: error=%s", result.error)
            return
        if not result.value:
            return
        try:
            parsed = json.loads(result.value)
            self._hits = max(0, int(parsed.get("hits", 0)))
            self._misses = max(0, int(parsed.get("misses", 0)))
        except (ValueError, TypeError, AttributeError):
            LOGGER.warning("cache stats malformed, starting from zero")

    def _save_stats(self) -> None:
        self._stats_dirty = False
        payload = json.dumps({"hits": self._hits, "misses": self._misses})
        result = safe_set(self.durable, self._stats_key, payload)
        if not result.ok:
            LOGGER.debug("cache stats not persisted: error=%s", result.error)

    def _read_durable(self, key: str) -> CacheEntry[Any] | None:
        result = safe_get(self.durable, self._durable_key(key))
        if not result.ok:
            LOGGER.warning("durable read failed: key=%s error=%s", key, result.error)
            return None
        if result.value is None:
            return None
        try:
            return CacheEntry.from_json(result.value)
        except (ValueError, TypeError):
            LOGGER.warning("durable entry corrupt, dropping: key=%s", key)
            self._remove_durable(key)
            return None

    def _remove_durable(self, key: str) -> None:
        result = safe_remove(self.durable, self._durable_key(key))
        if not result.ok:
            LOGGER.warning("durable remove failed: key=%s error=%s", key, result.error)

    def _write_durable(self, key: str, entry: CacheEntry[Any]) -> None:
        try:
            payload = entry.to_json()
        except (TypeError, ValueError) as error:
            LOGGER.warning("entry not serializable, memory-only: key=%s error=%s", key, error)
            return
        result = safe_set(self.durable, self._durable_key(key), payload)
        if result.ok:
            return
        LOGGER.warning("durable write failed, cleaning old entries: key=%s error=%s", key, result.error)
        self._cleanup_durable()
        retry = safe_set(self.durable, self._durable_key(key), payload)
        if not retry.ok:
            LOGGER.warning("durable write retry failed, memory-only: key=%s error=%s", key, retry.error)

    def _cleanup_durable(self) -> None:
        dated: list[tuple[float, str]] = []
        for key in self._namespaced_keys():
            entry = self._memory.get(key) or self._read_durable(key)
            dated.append((entry.created_at if entry else float("-inf"), key))
        dated.sort()
        to_remove = math.ceil(len(dated) * self.durable_cleanup_fraction)
        for _, key in dated[:to_remove]:
            self._remove_durable(key)
        LOGGER.info("durable cleanup removed %s entries", to_remove)

    def _hydrate_all(self) -> None:
        now = self.clock()
        for key in self._namespaced_keys():
            category = category_of(key)
            entry = self._read_durable(key)
            if entry is None:
                continue
            if category is None or now - entry.created_at > self.ttl(category):
                self._remove_durable(key)
                continue
            self._memory[key] = entry
        overflow = sorted(self._memory.items(), key=lambda item: item[1].created_at, reverse=True)[self.max_size:]
        for key, _ in overflow:
            self._evict(key)
        if self._memory:
            LOGGER.info("cache hydrated from durable tier: entries=%s dropped=%s", len(self._memory), len(overflow))

    def _admit(self, key: str, entry: CacheEntry[Any]) -> None:
        """Place a durable-tier entry in memory, evicting the oldest entries past `max_size`."""
        excess = len(self._memory) - self.max_size + 1
        if excess > 0:
            oldest = sorted(self._memory.items(), key=lambda item: item[1].created_at)[:excess]
            for old_key, _ in oldest:
                self._evict(old_key)
        self._memory[key] = entry

    def ttl(self, category: CacheCategory) -> float:
        return self.ttl_table.get(category, DEFAULT_TTL_SECONDS[CacheCategory.LIST])

    def _evict(self, key: str) -> None:
        self._memory.pop(key, None)
        self._remove_durable(key)

    def _record_miss(self, key: str, reason: str) -> None:
        self._misses += 1
        self._stats_dirty = True
        LOGGER.debug("cache miss: key=%s reason=%s", key, reason)

    def get(
        self,
        category: CacheCategory,
        identifier: Identifier,
        upstream: UpstreamSignal | None = None,
    ) -> Any | None:
        key = make_key(category, identifier)
        if upstream is not None and upstream.invalidated:
            self._evict(key)
            LOGGER.debug("cache entry purged by upstream invalidation: key=%s", key)
            return None
        if upstream is not None and upstream.disabled:
            return None

        entry = self._memory.get(key)
        if entry is None:
            entry = self._read_durable(key)
            if entry is not None:
                self._admit(key, entry)
        if entry is None:
            self._record_miss(key, "absent")
            return None

        age = self.clock() - entry.created_at
        if age > self.ttl(category):
            self._evict(key)
            self._record_miss(key, "expired")
            return None

        entry.hit_count += 1
        self._hits += 1
        self._stats_dirty = True
        LOGGER.debug("cache hit: key=%s hits=%s age_s=%.1f", key, entry.hit_count, age)
        return entry.data

    def set(self, category: CacheCategory, identifier: Identifier, data: Any) -> None:
        key = make_key(category, identifier)
        count = len(self._memory)
        if count >= self.set_eviction_threshold * self.max_size:
            to_remove = max(math.ceil(count * self.set_eviction_fraction), count - self.max_size + 1)
            oldest = sorted(self._memory.items(), key=lambda item: item[1].created_at)[:to_remove]
            for old_key, _ in oldest:
                self._evict(old_key)
            LOGGER.info("cache capacity eviction: removed=%s max_size=%s", len(oldest), self.max_size)

        entry: CacheEntry[Any] = CacheEntry(data=data, created_at=self.clock())
        self._memory[key] = entry
        self._write_durable(key, entry)
        LOGGER.debug("cache stored: key=%s", key)

    def preload(self, category: CacheCategory, identifier: Identifier, data: Any) -> None:
        self.set(category, identifier, data)

    def remove(self, category: CacheCategory, identifier: Identifier) -> None:
        key = make_key(category, identifier)
        self._evict(key)
        LOGGER.debug("cache removed: key=%s", key)

    def clear(self, pattern: str | None = None) -> int:
        keys = set(self._memory) | set(self._namespaced_keys())
        if pattern:
            keys = {key for key in keys if pattern in key}
        for key in keys:
            self._evict(key)
        LOGGER.info("cache cleared: pattern=%s removed=%s", pattern, len(keys))
        return len(keys)

    def invalidate_category(self, category: CacheCategory) -> int:
        prefix = make_key(category, "")
        keys = {key for key in set(self._memory) | set(self._namespaced_keys()) if key.startswith(prefix)}
        for key in keys:
            self._evict(key)
        LOGGER.info("cache category invalidated: category=%s removed=%s", category.value, len(keys))
        return len(keys)

    def has(self, category: CacheCategory, identifier: Identifier) -> bool:
        return self.get(category, identifier) is not None

    def get_stats(self) -> CacheStats:
        size = 0
        for key, entry in self._memory.items():
            try:
                size += len(key) + len(entry.to_json())
            except (TypeError, ValueError):
                continue
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            entry_count=len(self._memory),
            approximate_size_bytes=size,
        )

    def get_hit_rate(self) -> float:
        total = self._hits + self._misses
        if total == 0:
            return 0.0
        return self._hits / total

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0
        self._save_stats()
        LOGGER.info("cache stats reset")

    def flush_stats(self) -> None:
        """Persist hit/miss counters if they changed since the last write."""
        if self._stats_dirty:
            self._save_stats()

    def list_entries(self) -> list[EntryInfo]:
        now = self.clock()
        entries = [
            EntryInfo(
                key=key,
                category=category_of(key),
                age_seconds=round(max(0.0, now - entry.created_at), 3),
                hits=entry.hit_count,
            )
            for key, entry in self._memory.items()
        ]
        return sorted(entries, key=lambda info: info.hits, reverse=True)

    def sweep(self) -> int:
        """Drop expired entries, then the least-hit ones if still above the sweep threshold."""
        now = self.clock()
        expired = []
        for key, entry in self._memory.items():
            category = category_of(key)
            ttl = self.ttl(category) if category else self.ttl(CacheCategory.LIST)
            if now - entry.created_at > ttl:
                expired.append(key)
        for key in expired:
            self._evict(key)

        evicted: list[str] = []
        count = len(self._memory)
        if count > self.sweep_threshold * self.max_size:
            to_remove = math.ceil(count * self.sweep_fraction)
            ranked = sorted(self._memory.items(), key=lambda item: (item[1].hit_count, item[1].created_at))
            evicted = [key for key, _ in ranked[:to_remove]]
            for key in evicted:
                self._evict(key)

        removed = len(expired) + len(evicted)
        if removed:
            LOGGER.info("cache sweep: expired=%s least_used=%s remaining=%s", len(expired), len(evicted), len(self._memory))
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep()
            self.flush_stats()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    def dispose(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            self._sweep_task = None
        self.flush_stats()

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def __len__(self) -> int:
        return len(self._memory)
