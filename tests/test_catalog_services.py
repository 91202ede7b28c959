import asyncio
import json
from datetime import datetime, timezone

import pytest

from catalog_cache.cache.categories import CacheCategory
from catalog_cache.cache.store import CacheStore
from catalog_cache.providers.catalog_api import CatalogApiClient
from catalog_cache.services.base import ServiceContext
from catalog_cache.services.invalidation import has_recent_changes, invalidate_recent_changes

NOW = 1_700_000_000.0


class _FakeResponse:
    def __init__(self, body: object) -> None:
        self.status_code = 200
        self.ok = True
        self.headers = {}
        self.text = json.dumps(body)


class _CatalogSession:
    def __init__(self, services: list[dict]) -> None:
        self.services = services
        self.requests: list[tuple[str, dict | None]] = []

    def get(self, url: str, params=None, timeout=None, headers=None):
        self.requests.append((url, params))
        if url.endswith("/servicios"):
            return _FakeResponse({"success": True, "data": self.services, "pagination": {"page": 1}})
        slug = url.rsplit("/", 1)[-1]
        return _FakeResponse({"success": True, "data": {"slug": slug}})


def _iso(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _context(services: list[dict]) -> tuple[ServiceContext, _CatalogSession]:
    session = _CatalogSession(services)
    store = CacheStore(clock=lambda: NOW)
    client = CatalogApiClient("http://catalog/api", session=session)
    return ServiceContext(store=store, catalog_client=client), session


def test_detail_featured_and_category_orchestrators_bind_keys() -> None:
    ctx, session = _context([{"slug": "seo", "createdAt": _iso(NOW - 86400)}])

    async def scenario() -> None:
        detail = ctx.service_detail("seo-audit")
        featured = ctx.featured_services()
        by_category = ctx.services_by_category("marketing")
        for orch in (detail, featured, by_category):
            await orch.load()
        assert detail.data == {"slug": "seo-audit"}
        assert featured.data == [{"slug": "seo", "createdAt": _iso(NOW - 86400)}]
        assert by_category.key == 'BY_CATEGORY:{"categoria":"marketing"}'

    asyncio.run(scenario())
    assert ctx.store.has(CacheCategory.DETAIL, "seo-audit") is True
    assert ctx.store.has(CacheCategory.FEATURED, "featured") is True
    assert ctx.store.has(CacheCategory.BY_CATEGORY, {"categoria": "marketing"}) is True
    assert session.requests[1][1]["destacado"] == "true"
    assert session.requests[2][1]["categoria"] == "marketing"


def test_list_orchestrator_keeps_pagination_and_reads_cache_second_time() -> None:
    ctx, session = _context([{"slug": "web", "updatedAt": _iso(NOW - 3600)}])

    async def scenario() -> bool:
        first = ctx.services_list({"page": 1, "limit": 10})
        await first.load()
        second = ctx.services_list({"limit": 10, "page": 1})
        await second.load()
        return second.is_from_cache

    assert asyncio.run(scenario()) is True
    assert len(session.requests) == 1
    cached = ctx.store.get(CacheCategory.LIST, {"page": 1, "limit": 10})
    assert cached["pagination"] == {"page": 1}


def test_list_response_with_recent_changes_purges_listings() -> None:
    ctx, _ = _context([{"slug": "new", "createdAt": _iso(NOW - 30)}])
    ctx.store.set(CacheCategory.LIST, {"page": 1}, {"data": []})
    ctx.store.set(CacheCategory.FEATURED, "featured", [])
    ctx.store.set(CacheCategory.DETAIL, "web", {"slug": "web"})

    orch = ctx.services_list({"page": 2})
    asyncio.run(orch.load())

    assert ctx.store.has(CacheCategory.LIST, {"page": 1}) is False
    assert ctx.store.has(CacheCategory.FEATURED, "featured") is False
    assert ctx.store.has(CacheCategory.DETAIL, "web") is True
    assert ctx.store.get(CacheCategory.LIST, {"page": 2})["data"][0]["slug"] == "new"


def test_recent_change_detection() -> None:
    assert has_recent_changes([{"updatedAt": _iso(NOW - 60)}], NOW) is True
    assert has_recent_changes([{"createdAt": (NOW - 10) * 1000}], NOW) is True
    assert has_recent_changes([{"createdAt": _iso(NOW - 600), "updatedAt": "not a date"}], NOW) is False
    assert has_recent_changes(["oops", {}], NOW) is False

    store = CacheStore(clock=lambda: NOW)
    store.set(CacheCategory.SEARCH, "seo", [])
    assert invalidate_recent_changes(store, [{"createdAt": _iso(NOW - 600)}]) == 0
    assert invalidate_recent_changes(store, [{"createdAt": _iso(NOW - 1)}]) == 1


def test_orchestrators_require_a_catalog_client() -> None:
    ctx = ServiceContext(store=CacheStore())
    with pytest.raises(RuntimeError):
        ctx.featured_services()
