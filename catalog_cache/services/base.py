"""Shared service orchestration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from catalog_cache.cache.categories import CacheCategory
from catalog_cache.cache.keys import Identifier
from catalog_cache.cache.signals import SignalledResponse
from catalog_cache.cache.store import CacheStore
from catalog_cache.providers.catalog_api import CatalogApiClient, service_items
from catalog_cache.services.fetch_orchestrator import FetchOrchestrator
from catalog_cache.services.invalidation import invalidate_recent_changes

T = TypeVar("T")

FEATURED_IDENTIFIER = "featured"


@dataclass
class ServiceContext:
    store: CacheStore
    catalog_client: CatalogApiClient | None = None
    fetch_max_retries: int = 2
    fetch_cooldown_seconds: float = 5.0

    def orchestrator(
        self,
        category: CacheCategory,
        identifier: Identifier,
        fetch: Callable[[], Awaitable[Any]],
        **options: Any,
    ) -> FetchOrchestrator[Any]:
        options.setdefault("max_retries", self.fetch_max_retries)
        options.setdefault("cooldown_seconds", self.fetch_cooldown_seconds)
        return FetchOrchestrator(self.store, category, identifier, fetch, **options)

    def _client(self) -> CatalogApiClient:
        if self.catalog_client is None:
            raise RuntimeError("Catalog client is not configured.")
        return self.catalog_client

    def services_list(self, filters: dict[str, Any] | None = None, **options: Any) -> FetchOrchestrator[Any]:
        """Paginated listing for `filters`; a response with freshly changed services purges the listings first."""
        client = self._client()
        clean = dict(filters or {})
        blocking = client.as_fetch(client.list_services, clean)

        async def fetch() -> SignalledResponse[Any]:
            response = await blocking()
            invalidate_recent_changes(self.store, service_items(response.data))
            return response

        return self.orchestrator(CacheCategory.LIST, clean, fetch, **options)

    def service_detail(self, slug: str, **options: Any) -> FetchOrchestrator[Any]:
        client = self._client()
        return self.orchestrator(CacheCategory.DETAIL, slug, client.as_fetch(client.get_service, slug), **options)

    def featured_services(self, **options: Any) -> FetchOrchestrator[Any]:
        client = self._client()
        return self.orchestrator(
            CacheCategory.FEATURED,
            FEATURED_IDENTIFIER,
            client.as_fetch(client.featured_services),
            **options,
        )

    def services_by_category(self, category: str, **options: Any) -> FetchOrchestrator[Any]:
        client = self._client()
        return self.orchestrator(
            CacheCategory.BY_CATEGORY,
            {"categoria": category},
            client.as_fetch(client.services_by_category, category),
            **options,
        )


async def get_cached(
    store: CacheStore,
    category: CacheCategory,
    identifier: Identifier,
    fetcher: Callable[[], Awaitable[T]],
) -> T:
    """Return the cached value or fetch, store and return it. No de-duplication or retry control."""
    cached = store.get(category, identifier)
    if cached is not None:
        return cached
    value: Any = await fetcher()
    if isinstance(value, SignalledResponse):
        if value.signal.invalidated or value.signal.disabled:
            store.remove(category, identifier)
        if not value.signal.disabled:
            store.set(category, identifier, value.data)
        return value.data
    store.set(category, identifier, value)
    return value
