"""Operator-facing cache inspection and maintenance."""

from __future__ import annotations

from catalog_cache.cache.categories import CacheCategory, parse_category
from catalog_cache.cache.keys import make_key
from catalog_cache.cache.store import CacheStore, EntryInfo
from catalog_cache.runtime.monitoring import CacheHealthSnapshot, efficiency_level
from catalog_cache.providers.catalog_api import CatalogApiClient
from catalog_cache.services.base import FEATURED_IDENTIFIER, ServiceContext, get_cached
from catalog_cache.services.invalidation import invalidate_on_mutation


class CacheAdminService:
    def __init__(self, ctx: ServiceContext) -> None:
        self.ctx = ctx

    @property
    def store(self) -> CacheStore:
        return self.ctx.store

    def snapshot(self) -> CacheHealthSnapshot:
        stats = self.store.get_stats()
        return CacheHealthSnapshot(
            hits=stats.hits,
            misses=stats.misses,
            entry_count=stats.entry_count,
            approximate_size_bytes=stats.approximate_size_bytes,
            size_label=stats.size_label,
            hit_rate=round(self.store.get_hit_rate(), 4),
            efficiency=efficiency_level(stats.hits, stats.misses),
            sweep_running=self.store.running,
        )

    def list_entries(self, limit: int = 50) -> list[EntryInfo]:
        return self.store.list_entries()[: max(1, limit)]

    def clear(self, pattern: str | None = None) -> int:
        return self.store.clear(pattern.strip() if pattern and pattern.strip() else None)

    def invalidate_category(self, category: str) -> int:
        return self.store.invalidate_category(parse_category(category))

    def invalidate_mutation(self, kind: str) -> int:
        return invalidate_on_mutation(self.store, kind)

    def reset_stats(self) -> None:
        self.store.reset_stats()

    def sweep(self) -> int:
        return self.store.sweep()

    async def warm(self) -> list[str]:
        """Prefetch the featured and unfiltered listings through the catalog client."""
        client = self.ctx.catalog_client
        if not isinstance(client, CatalogApiClient):
            return []
        await get_cached(self.store, CacheCategory.FEATURED, FEATURED_IDENTIFIER, client.as_fetch(client.featured_services))
        await get_cached(self.store, CacheCategory.LIST, {}, client.as_fetch(client.list_services))
        return [make_key(CacheCategory.FEATURED, FEATURED_IDENTIFIER), make_key(CacheCategory.LIST, {})]
